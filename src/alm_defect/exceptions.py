"""커스텀 예외 정의."""

from __future__ import annotations

from enum import Enum


class AlmDefectError(Exception):
    """프로젝트 최상위 예외."""


class ConfigError(AlmDefectError):
    """설정 관련 오류."""


class ManifestErrorKind(Enum):
    """매니페스트 검증 실패 종류 (검사 순서대로)."""

    MISSING_ROOT = "missing required element tmt"
    EMPTY_SECTION = "empty tmt:, missing required elements"
    MISSING_DOMAIN = "missing required element /tmt/domain"
    MISSING_PROJECT = "missing required element /tmt/project"
    INVALID_DOCUMENT = "malformed delivery document"


class ManifestError(AlmDefectError):
    """배포 매니페스트 파싱/검증 실패."""

    def __init__(self, kind: ManifestErrorKind, detail: str = "") -> None:
        self.kind = kind
        message = kind.value
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class AuthError(AlmDefectError):
    """ALM 로그인 거부."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class TransportError(AlmDefectError):
    """ALM 서버와의 통신 실패."""


class DecodeError(AlmDefectError):
    """ALM 응답 본문을 해석할 수 없음."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class ReconcileError(AlmDefectError):
    """결함 상태 전환 배치가 중단됨.

    중단 시점까지 기록된 결과(outcomes)를 함께 전달합니다.
    마지막 결과는 항상 FAILED 입니다.
    """

    def __init__(self, defect_id: str, outcomes: list, cause: Exception) -> None:
        self.defect_id = defect_id
        self.outcomes = outcomes
        super().__init__(f"결함 {defect_id!r} 처리 중 중단: {cause}")
