"""Backend-side API contract constants.

Keep externally visible prefixes centralized for drift control.
"""

API_PREFIXES = {
    "salaries": "/api/clubs/{club_id}/salaries",
    "employees": "/api/clubs/{club_id}/employees",
    "salary_schemes": "/api/clubs/{club_id}/salary-schemes",
}
