from bugtracker.models.bug import Bug, BugTag, Severity, Status
from bugtracker.models.user import User

__all__ = ["Bug", "BugTag", "Severity", "Status", "User"]
