# app/core/constants.py

from typing import Optional

# ==========================================================
# DEPARTMENTS (ids must match the 'id' column in DB)
# ==========================================================
DEPARTMENT_ID_MAP = {
    "Maintenance": "dept_001",
    "Housekeeping": "dept_002",
    "Front-of-House": "dept_003",
    "Activities": "dept_004",
    "Operations": "dept_005",
    "Grounds": "dept_006",
}

DEPARTMENT_NAME_MAP = {dept_id: name for name, dept_id in DEPARTMENT_ID_MAP.items()}


def get_department_id(value: Optional[str]) -> Optional[str]:
    """Accepts a department name or id and returns the id."""
    if value is None:
        return None
    return DEPARTMENT_ID_MAP.get(value, value)


def get_department_name(department_id: Optional[str]) -> Optional[str]:
    if department_id is None:
        return None
    return DEPARTMENT_NAME_MAP.get(department_id, department_id)


# ==========================================================
# AUDIT
# ==========================================================
SYSTEM_USER_ID = "system"   # actor for entries with no interactive caller
