"""Polling of long-running server-side jobs (PDF generation, e-document issuance)."""

from __future__ import annotations

import asyncio
import time
from enum import StrEnum

from loguru import logger
from pydantic import BaseModel, Field

from ..errors import DecodeError, JobFailureError, JobTimeoutError
from ..jsonapi import Resource, parse_document
from ..transport import HttpTransport
from .base import Clock, Sleep

DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_TIMEOUT = 60.0


class JobStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in {JobStatus.DONE, JobStatus.ERROR}


class Job(BaseModel):
    """Snapshot of a trackable job."""

    id: str = Field(description="Trackable job identifier")
    status: JobStatus = Field(description="Current job status")
    errors: list[str] = Field(default_factory=list, description="Server-reported errors")

    @classmethod
    def from_resource(cls, resource: Resource) -> Job:
        status = resource.attributes.get("status")
        try:
            parsed = JobStatus(status)
        except ValueError as exc:
            raise DecodeError(
                f"Unknown trackable job status: {status!r}",
                expected="one of pending, running, done, error",
                actual=repr(status),
                cause=exc,
            ) from exc
        errors = resource.attributes.get("errors") or []
        return cls(id=resource.id, status=parsed, errors=[str(error) for error in errors])


class JobResult(BaseModel):
    success: bool
    job: Job
    errors: list[str] = Field(default_factory=list)


class JobState:
    """Monotonic status tracker for a single poll call.

    Starts at ``pending``; once a terminal status is observed it is never
    replaced.
    """

    def __init__(self) -> None:
        self.status = JobStatus.PENDING

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def advance(self, observed: JobStatus) -> JobStatus:
        if not self.is_terminal:
            self.status = observed
        return self.status


class TrackableJobsResource:
    """Access to ``/{company_id}/trackable_jobs``."""

    def __init__(
        self,
        transport: HttpTransport,
        company_id: int,
        *,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._company_id = company_id
        self._clock = clock
        self._sleep = sleep

    async def get(self, id_: str) -> Job:
        body = await self._transport.get(f"/{self._company_id}/trackable_jobs/{id_}")
        return Job.from_resource(parse_document(body).data)

    async def poll(
        self,
        id_: str,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> Job:
        """Fetch the job until it is ``done`` (returned) or ``error`` (raised).

        Raises ``JobTimeoutError`` with the last non-terminal status once
        ``timeout`` seconds have elapsed.
        """

        state = JobState()
        started = self._clock()
        while True:
            if self._clock() - started >= timeout:
                raise JobTimeoutError(id_, state.status.value, timeout)

            job = await self.get(id_)
            status = state.advance(job.status)

            if status is JobStatus.DONE:
                logger.info(f"Trackable job {id_} completed")
                return job
            if status is JobStatus.ERROR:
                logger.warning(f"Trackable job {id_} failed: {job.errors}")
                raise JobFailureError(id_, job.errors)

            logger.debug(f"Trackable job {id_} is {status.value}; sleeping {poll_interval:g}s")
            await self._sleep(poll_interval)

    async def wait_for_completion(
        self,
        id_: str,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> JobResult:
        """Like :meth:`poll`, but a failed job is returned instead of raised.

        Any other error, including ``JobTimeoutError``, propagates.
        """

        try:
            job = await self.poll(id_, poll_interval=poll_interval, timeout=timeout)
        except JobFailureError as error:
            failed = Job(id=id_, status=JobStatus.ERROR, errors=error.errors)
            return JobResult(success=False, job=failed, errors=error.errors)
        return JobResult(success=True, job=job)
