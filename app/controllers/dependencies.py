"""Common FastAPI dependencies reused across controllers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from app.services.evaluation import EvaluationService


def get_evaluation_service(request: Request) -> EvaluationService:
    """Return the service assembled at startup."""

    service = getattr(request.app.state, "evaluation_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Evaluation service is not ready",
        )
    return service


EvaluationServiceDep = Annotated[EvaluationService, Depends(get_evaluation_service)]


__all__ = ["get_evaluation_service", "EvaluationServiceDep"]
