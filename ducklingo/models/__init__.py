from ducklingo.models.progress import User, UserProgress, UserLevelProgress

__all__ = [
    "User",
    "UserProgress",
    "UserLevelProgress",
]
