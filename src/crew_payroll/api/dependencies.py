"""FastAPI dependencies for dependency injection."""

from typing import Annotated

from fastapi import Depends, Request

from crew_payroll.services.payroll_service import PayrollService


def get_payroll_service(request: Request) -> PayrollService:
    """Get the payroll service built at startup."""
    return request.app.state.payroll_service


# Type aliases for cleaner dependency injection
Payroll = Annotated[PayrollService, Depends(get_payroll_service)]
