from __future__ import annotations

import os


# Central routing of scrape kinds to Bright Data datasets. Edit here to change
# the per-kind defaults; env vars override for quick testing.
#
# Keys are the scrape types accepted by the trigger endpoint.
DATASETS: dict[str, dict] = {
    # LinkedIn people profiles
    "profile": {
        "dataset_id": os.getenv("BRIGHTDATA_PROFILE_DATASET_ID", "gd_l1viktl72bvl7bjuj0"),
        # Path marker preceding the slug in a LinkedIn URL
        "marker": "in",
    },
    # LinkedIn company pages
    "company": {
        "dataset_id": os.getenv("BRIGHTDATA_COMPANY_DATASET_ID", "gd_l1vikfnt1wgvvqz95w"),
        "marker": "company",
    },
}


def dataset_id_for(kind: str, settings=None) -> str:
    """Dataset id for a scrape kind; loaded settings win over the module defaults."""
    if kind not in DATASETS:
        raise KeyError(f"Unknown scrape type: {kind}")
    if settings is not None:
        return getattr(settings, f"{kind}_dataset_id")
    return DATASETS[kind]["dataset_id"]
