from .user import User
from .user_statistics import UserStatistics
from .visitor import Visitor

__all__ = ["User", "UserStatistics", "Visitor"]
