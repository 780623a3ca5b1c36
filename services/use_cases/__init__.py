"""
Use Cases package for business logic encapsulation.

This package contains use case classes that encapsulate business logic
and orchestrate interactions between repositories and services.
"""

from services.use_cases.report_approval import ApproveReportUseCase, ApprovalResult

__all__ = [
    'ApproveReportUseCase',
    'ApprovalResult',
]
