# Namespace for pipeline steps
from .validate_profiles import ValidateScrapedProfiles  # noqa: F401
from .persist_profiles import PersistProfiles  # noqa: F401
from .validate_companies import ValidateScrapedCompanies  # noqa: F401
from .persist_companies import PersistScrapedCompanies  # noqa: F401
from .sync_companies import SyncCompaniesFromResults  # noqa: F401
