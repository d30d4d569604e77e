"""Compensation module router aggregation."""
from clubpay.routers import kpi, salaries, salary_schemes

ROUTERS = [salaries.router, kpi.router, salary_schemes.router, salary_schemes.assignment_router]
