"""
Report API endpoints
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status

from cityfix.core.errors import ErrorResponseModel
from cityfix.dependencies.auth import require_identity
from cityfix.dependencies.services import get_client_ip, get_report_service
from cityfix.schemas.report import ReportCreate, ReportResponse, ReportUpdate
from cityfix.security.identity import Identity
from cityfix.services.report import ReportService

router = APIRouter()


@router.post(
    "",
    response_model=ReportResponse,
    status_code=status.HTTP_201_CREATED,
    responses={401: {"model": ErrorResponseModel}, 503: {"model": ErrorResponseModel}},
)
async def create_report(
    data: ReportCreate,
    identity: Identity = Depends(require_identity),
    ip_address: Optional[str] = Depends(get_client_ip),
    service: ReportService = Depends(get_report_service),
):
    """
    Create a report for the authenticated user.

    Responds 503 when the report.created event cannot be handed to the broker;
    the report row is already stored at that point.
    """
    report = await service.create_report(data, identity, ip_address)
    return ReportResponse.from_report(report)


@router.get("", response_model=List[ReportResponse])
async def list_reports(service: ReportService = Depends(get_report_service)):
    reports = await service.get_all_reports()
    return [ReportResponse.from_report(report) for report in reports]


@router.get(
    "/{report_id}",
    response_model=ReportResponse,
    responses={404: {"model": ErrorResponseModel}},
)
async def get_report(report_id: int, service: ReportService = Depends(get_report_service)):
    return ReportResponse.from_report(await service.get_report(report_id))


@router.put(
    "/{report_id}",
    response_model=ReportResponse,
    responses={
        401: {"model": ErrorResponseModel},
        403: {"model": ErrorResponseModel},
        404: {"model": ErrorResponseModel},
    },
)
async def update_report(
    report_id: int,
    data: ReportUpdate,
    identity: Identity = Depends(require_identity),
    ip_address: Optional[str] = Depends(get_client_ip),
    service: ReportService = Depends(get_report_service),
):
    """Update a report. Only its owner may do so."""
    report = await service.update_report(report_id, data, identity, ip_address)
    return ReportResponse.from_report(report)


@router.delete(
    "/{report_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        401: {"model": ErrorResponseModel},
        403: {"model": ErrorResponseModel},
        404: {"model": ErrorResponseModel},
    },
)
async def delete_report(
    report_id: int,
    identity: Identity = Depends(require_identity),
    ip_address: Optional[str] = Depends(get_client_ip),
    service: ReportService = Depends(get_report_service),
):
    await service.delete_report(report_id, identity, ip_address)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
