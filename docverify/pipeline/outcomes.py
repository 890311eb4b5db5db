"""
Per-applicant results and the fold that turns them into a request status.
"""

from dataclasses import dataclass, field
from typing import Optional, Union

from docverify.models.enums import FailureKind, VerificationStatus
from docverify.schemas.events import CustomerDocumentResult


@dataclass(frozen=True)
class ApplicantSuccess:
    applicant_id: str
    result: CustomerDocumentResult


@dataclass(frozen=True)
class ApplicantFailure:
    applicant_id: str
    kind: FailureKind
    message: str
    document_type: Optional[str] = None


ApplicantResult = Union[ApplicantSuccess, ApplicantFailure]


@dataclass
class RequestFold:
    """Accumulates applicant results in request order."""
    successes: list[ApplicantSuccess] = field(default_factory=list)
    failures: list[ApplicantFailure] = field(default_factory=list)

    def add(self, result: ApplicantResult) -> "RequestFold":
        if isinstance(result, ApplicantSuccess):
            self.successes.append(result)
        else:
            self.failures.append(result)
        return self

    @property
    def status(self) -> VerificationStatus:
        # FAILED is reserved for a request that aborted before the applicant loop
        if self.failures:
            return VerificationStatus.PARTIAL_SUCCESS
        return VerificationStatus.COMPLETED

    def customer_results(self) -> dict[str, list[CustomerDocumentResult]]:
        results: dict[str, list[CustomerDocumentResult]] = {}
        for success in self.successes:
            results.setdefault(success.applicant_id, []).append(success.result)
        return results

    def failure_summary(self) -> Optional[str]:
        if not self.failures:
            return None
        return "; ".join(f"{f.applicant_id}: {f.message}" for f in self.failures)


def fold(results: list[ApplicantResult]) -> RequestFold:
    acc = RequestFold()
    for result in results:
        acc.add(result)
    return acc
