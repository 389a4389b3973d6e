from enum import Enum

class TaskStatus(str, Enum):
    Pending = "pending"
    InProgress = "in_progress"
    Completed = "completed"
    Cancelled = "cancelled"

class TaskPriority(str, Enum):
    Low = "low"
    Medium = "medium"
    High = "high"
    Urgent = "urgent"

class SopStatus(str, Enum):
    Draft = "draft"
    Active = "active"
    Archived = "archived"

class ClockSessionStatus(str, Enum):
    Active = "active"
    Completed = "completed"
    Cancelled = "cancelled"

class ReminderStatus(str, Enum):
    Pending = "pending"
    Sent = "sent"
    Dismissed = "dismissed"
    Cancelled = "cancelled"

class FeedbackStatus(str, Enum):
    Open = "open"
    InReview = "in_review"
    Resolved = "resolved"
    Closed = "closed"

class UserStatus(str, Enum):
    Active = "active"
    Inactive = "inactive"
    Suspended = "suspended"
    Deleted = "deleted"

class AuditAction(str, Enum):
    Insert = "INSERT"
    Update = "UPDATE"
    Delete = "DELETE"
