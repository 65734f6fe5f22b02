"""
Exception types raised across the backend

Transport failures either downgrade to empty data or surface as
LLMUnavailableError / TrackingServiceError; domain failures abort only the
current analysis cycle through AnalysisCycleError.
"""


class CompanionError(Exception):
    """Base class for backend errors"""


class TrackingServiceError(CompanionError):
    """The activity tracking service could not be reached"""


class AnalysisCycleError(CompanionError):
    """An analysis cycle cannot produce a result"""


class BucketNotFoundError(AnalysisCycleError):
    """No bucket matches the configured prefix"""

    def __init__(self, prefix: str):
        self.prefix = prefix
        super().__init__(f"No tracking bucket found with prefix '{prefix}'")


class NoActivityDataError(AnalysisCycleError):
    """No window activity was recorded in any timeframe"""


class LLMUnavailableError(CompanionError):
    """The text-generation backend failed or returned an unusable payload"""
