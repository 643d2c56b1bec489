import os
from dataclasses import dataclass, field

DEFAULT_BASE_URL = "https://management.azure.com"
DEFAULT_API_VERSION = "2019-10-01"

# what to do when a page request fails mid-pagination
FAILURE_POLICIES: "tuple[str, ...]" = ("warn", "fail")


@dataclass
class Config:
    access_token: "str" = ""
    # account (subscription) identifiers, fetched in this order
    accounts: "list[str]" = field(default_factory=list)

    base_url: "str" = DEFAULT_BASE_URL
    api_version: "str" = DEFAULT_API_VERSION
    # per-request timeout in seconds
    request_timeout: "float" = 30.0
    # pages allowed per account before the run is aborted
    max_pages: "int" = 1000
    on_fetch_failure: "str" = "warn"

    # empty means usage_<period>.xlsx in the working directory
    output_path: "str" = ""
    # empty disables writing metrics
    metrics_textfile: "str" = ""
    log_level: "str" = "info"
    # console or json
    log_format: "str" = "console"

    @classmethod
    def from_env(cls) -> "Config":
        accounts = os.environ.get("COSTSHEET_ACCOUNTS", "")
        return cls(
            access_token=os.environ.get("COSTSHEET_ACCESS_TOKEN", ""),
            accounts=[a.strip() for a in accounts.split(",") if a.strip()],
            base_url=os.environ.get("COSTSHEET_BASE_URL", DEFAULT_BASE_URL),
            api_version=os.environ.get("COSTSHEET_API_VERSION", DEFAULT_API_VERSION),
        )

    @property
    def fail_on_fetch_error(self) -> "bool":
        return self.on_fetch_failure == "fail"
