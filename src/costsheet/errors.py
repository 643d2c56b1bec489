class CostsheetError(Exception):
    """
    base class for errors that abort a report run.
    """


class AuthenticationError(CostsheetError):
    """
    raised when no bearer token can be obtained.
    """


class FetchError(CostsheetError):
    """
    raised when a page request for an account fails and the
    configured policy is to stop the run.
    """

    def __init__(self, account_id: "str", reason: "str") -> "None":
        super().__init__(f"fetch failed for account {account_id}: {reason}")
        self.account_id = account_id
        self.reason = reason


class PageLimitExceeded(FetchError):
    """
    raised when an account keeps returning continuation links
    past the configured page cap.
    """

    def __init__(self, account_id: "str", max_pages: "int") -> "None":
        super().__init__(account_id, f"more than {max_pages} pages")
        self.max_pages = max_pages
