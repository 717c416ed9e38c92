"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every service in the kernel layer.  All concrete services receive a
    SQLAlchemy ``Session`` that they use via ``session.flush()`` -- never
    ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    Transaction boundaries: services flush within the caller's transaction
    and never commit or roll back themselves.  Multi-step mutations run in
    a SAVEPOINT so that a failure leaves nothing of the step persisted.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from wbs_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``; the caller controls transaction
          boundaries.

    Non-goals:
        - Does NOT provide read models -- those belong in
          ``wbs_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
