"""Manual sync trigger — runs one sync pass over every active tenant."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from copilot_saver.api.deps import get_sync_job
from copilot_saver.api.models.schemas import KindOutcomeOut, SyncReportOut
from copilot_saver.data.scheduler import SyncJob, SyncReport, SyncState

router = APIRouter(prefix="/sync", tags=["sync"])


def _report_out(report: SyncReport) -> SyncReportOut:
    return SyncReportOut(
        started_at=report.started_at,
        finished_at=report.finished_at,
        aborted=report.aborted,
        succeeded=report.succeeded,
        failed=report.failed,
        outcomes=[
            KindOutcomeOut(
                tenant=o.tenant, kind=o.kind.value, status=o.status.value, error=o.error,
            )
            for o in report.outcomes
        ],
    )


@router.post("", response_model=SyncReportOut)
async def run_sync(job: SyncJob = Depends(get_sync_job)) -> SyncReportOut:
    """Run the sync job now and return its report (409 if one is running)."""
    report = None if job.state is SyncState.RUNNING else await job.run()
    if report is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A sync run is already in progress",
        )
    return _report_out(report)


@router.get("/last", response_model=SyncReportOut)
async def last_sync(job: SyncJob = Depends(get_sync_job)) -> SyncReportOut:
    """Report of the most recent sync run."""
    if job.last_report is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No sync run has completed yet",
        )
    return _report_out(job.last_report)
