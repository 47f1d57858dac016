"""Request-scoped dependencies for the LMS routes.

Authentication happens upstream: the gateway verifies the caller and passes
the learner id in ``X-Learner-Id``.  A request without it is rejected here
before any service runs.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from app.services.container import LmsServices

logger = logging.getLogger(__name__)


def get_services(request: Request) -> LmsServices:
    return request.app.state.lms


def require_learner(
    x_learner_id: Annotated[str | None, Header()] = None,
) -> str:
    learner_id = (x_learner_id or "").strip()
    if not learner_id:
        logger.warning("Request rejected: missing X-Learner-Id")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Learner identity required",
        )
    return learner_id


def learner_name(
    x_learner_name: Annotated[str | None, Header()] = None,
) -> str | None:
    return (x_learner_name or "").strip() or None


Services = Annotated[LmsServices, Depends(get_services)]
LearnerId = Annotated[str, Depends(require_learner)]
LearnerName = Annotated[str | None, Depends(learner_name)]
