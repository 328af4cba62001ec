from app.schemas.contracts import (
    ContractResponse,
    SignedUploadRequest,
    ContractApproveRequest,
    ContractRejectRequest,
)
from app.schemas.lifecycle import (
    ProjectLifecycleResponse,
    Round2SelectionRequest,
    ProjectVerifyRequest,
    ProjectCancelRequest,
    ForceDeadlinesResponse,
)
from app.schemas.reconciliation import CycleReportResponse, SchedulerStatusResponse
