"""ALM 결함 및 관련 데이터 모델."""

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class Defect:
    """ALM 결함 정보 (일부 필드)."""

    id: int
    subject: str = ""
    status: str = ""
    type: str = ""

    @classmethod
    def from_api_response(cls, data: dict) -> "Defect":
        """ALM REST API 응답에서 Defect 생성.

        Raises:
            TypeError: status/type이 문자열이 아닐 때.
        """
        for key in ("status", "type"):
            value = data.get(key)
            if value is not None and not isinstance(value, str):
                raise TypeError(f"{key} 필드는 문자열이어야 합니다: {value!r}")
        subject = data.get("subject")
        return cls(
            id=int(data.get("id") or 0),
            subject="" if subject is None else str(subject),
            status=data.get("status") or "",
            type=data.get("type") or "",
        )

    def to_payload(self) -> dict:
        """PUT 요청 본문. 비어 있는 필드는 보내지 않습니다."""
        payload = {"id": self.id, "status": self.status}
        if self.subject:
            payload["subject"] = self.subject
        if self.type:
            payload["type"] = self.type
        return payload


@dataclass(frozen=True)
class Domain:
    """ALM 도메인."""

    name: str

    @classmethod
    def from_api_response(cls, data: dict) -> "Domain":
        return cls(name=data.get("name") or "")


@dataclass(frozen=True)
class Release:
    """ALM 릴리스 정보."""

    id: int
    name: str = ""
    status: str = ""
    type: str = ""

    @classmethod
    def from_api_response(cls, data: dict) -> "Release":
        return cls(
            id=int(data.get("id") or 0),
            name=data.get("name") or "",
            status=data.get("status") or "",
            type=data.get("type") or "",
        )


@dataclass(frozen=True)
class DeliveryManifest:
    """배포 매니페스트: 릴리스에 포함된 결함 목록."""

    domain: str
    project: str
    defect_ids: tuple[str, ...] = field(default_factory=tuple)


class OutcomeKind(Enum):
    """결함별 상태 전환 결과."""

    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class ReconcileOutcome:
    """결함 하나에 대한 상태 전환 결과."""

    defect_id: str
    kind: OutcomeKind
    defect: Defect | None = None
    reason: str = ""
