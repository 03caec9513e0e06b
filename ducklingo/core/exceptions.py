"""
Application exceptions
"""


class DucklingoError(Exception):
    """Base exception for the rewards engine"""


class AttemptRetrievalError(DucklingoError):
    """
    The attempt history could not be read, or came back malformed.

    Never to be reported to a learner as "no medal": it means we do not know.
    """

    def __init__(self, detail: str = "Could not read attempt history", user_id: str = None):
        self.detail = detail
        self.user_id = user_id
        super().__init__(detail)


class InvalidMedalConfiguration(DucklingoError):
    """Medal requirement table is incomplete or not strictly increasing"""


class InvalidTimezoneConfiguration(DucklingoError):
    """STREAK_TIMEZONE is not a known IANA zone"""
