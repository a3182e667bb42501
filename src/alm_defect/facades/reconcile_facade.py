"""결함 상태 전환 Facade.

AlmService를 조합하여 고수준 워크플로우를 제공합니다.

주요 워크플로우:
    1. 로그인 → 작업 → 로그아웃 (세션 수명 관리)
    2. 배포 매니페스트의 결함 상태 일괄 전환
    3. 결함 ID 목록의 상태 일괄 전환
    4. 결함/도메인/릴리스 목록 조회
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Protocol, Sequence

from alm_defect.config import AlmConfig
from alm_defect.exceptions import AlmDefectError, ReconcileError
from alm_defect.models.defect import (
    Defect,
    DeliveryManifest,
    Domain,
    OutcomeKind,
    ReconcileOutcome,
    Release,
)

logger = logging.getLogger(__name__)


class DefectGateway(Protocol):
    """Facade가 사용하는 원격 ALM 연산."""

    def sign_in(self) -> None: ...

    def sign_out(self) -> bool: ...

    def get_defect(self, domain: str, project: str, defect_id: int) -> Defect: ...

    def put_defect(self, domain: str, project: str, defect: Defect) -> Defect: ...

    def list_defects(self, domain: str, project: str) -> list[Defect]: ...

    def list_domains(self) -> list[Domain]: ...

    def list_releases(self, domain: str, project: str) -> list[Release]: ...


def parse_defect_id(raw_id: str) -> int:
    """결함 ID 문자열을 정수로 변환합니다.

    ASCII 숫자(선택적 부호)만 허용합니다. `4_711`이나 전각 숫자는 거부합니다.

    Raises:
        ValueError: 정수 형식이 아닐 때.
    """
    text = str(raw_id)
    digits = text[1:] if text[:1] in ("+", "-") else text
    if not (digits.isascii() and digits.isdigit()):
        raise ValueError(f"결함 ID가 정수가 아닙니다: {raw_id!r}")
    return int(text)


@contextmanager
def signed_in(gateway: DefectGateway) -> Iterator[DefectGateway]:
    """로그인한 세션 안에서 작업을 실행합니다.

    로그인 실패는 그대로 전파되며, 이때는 로그아웃을 호출하지 않습니다.
    로그인에 성공하면 작업이 실패하더라도 반드시 로그아웃합니다.
    로그아웃 실패는 경고로만 남기고, 작업의 결과(예외)를 가리지 않습니다.
    """
    gateway.sign_in()
    try:
        yield gateway
    finally:
        try:
            if not gateway.sign_out():
                logger.warning("로그아웃이 정상적으로 완료되지 않았습니다.")
        except AlmDefectError as e:
            logger.warning("로그아웃 실패 (무시): %s", e)


class ReconcileFacade:
    """결함 상태 전환 워크플로우를 조합하는 Facade 클래스."""

    def __init__(self, config: AlmConfig, gateway: DefectGateway) -> None:
        self._config = config
        self._gateway = gateway

    # ─── 워크플로우: 상태 일괄 전환 ──────────────────────────────────────

    def reconcile(
        self,
        manifest: DeliveryManifest,
        from_status: str | None = None,
        into_status: str | None = None,
    ) -> list[ReconcileOutcome]:
        """배포 매니페스트에 포함된 결함들의 상태를 전환합니다.

        도메인/프로젝트는 설정값 대신 매니페스트의 값을 사용합니다.
        """
        return self.reconcile_ids(
            manifest.defect_ids,
            from_status=from_status,
            into_status=into_status,
            domain=manifest.domain,
            project=manifest.project,
        )

    def reconcile_ids(
        self,
        defect_ids: Sequence[str],
        from_status: str | None = None,
        into_status: str | None = None,
        domain: str | None = None,
        project: str | None = None,
    ) -> list[ReconcileOutcome]:
        """결함 ID 목록을 순서대로 처리합니다.

        1. ID를 정수로 변환
        2. 결함 조회
        3. from_status가 주어졌고 현재 상태가 그 값으로 시작하지 않으면 건너뜀
        4. {id, into_status}만 담은 레코드로 결함을 교체

        어느 단계든 실패하면 남은 ID는 처리하지 않습니다.
        이미 전환된 결함은 되돌리지 않습니다.

        Args:
            defect_ids: 처리할 결함 ID (문자열) 목록.
            from_status: 현재 상태 접두어 필터 (None이면 설정값).
            into_status: 전환할 상태 (None이면 설정값).
            domain: ALM 도메인 (None이면 설정값).
            project: ALM 프로젝트 (None이면 설정값).

        Returns:
            ID 순서대로의 결과 목록 (UPDATED 또는 SKIPPED).

        Raises:
            ReconcileError: ID 변환 또는 원격 호출 실패 시.
        """
        from_status = self._config.from_status if from_status is None else from_status
        into_status = self._config.into_status if into_status is None else into_status
        domain = domain or self._config.domain
        project = project or self._config.project

        outcomes: list[ReconcileOutcome] = []
        for raw_id in defect_ids:
            try:
                outcome = self._reconcile_one(raw_id, from_status, into_status, domain, project)
            except (ValueError, AlmDefectError) as e:
                logger.error("결함 %r 처리 실패, 중단합니다: %s", raw_id, e)
                outcomes.append(
                    ReconcileOutcome(raw_id, OutcomeKind.FAILED, reason=str(e))
                )
                raise ReconcileError(raw_id, outcomes, e) from e
            outcomes.append(outcome)

        logger.info(
            "상태 전환 완료: 전환 %d건, 건너뜀 %d건",
            sum(o.kind is OutcomeKind.UPDATED for o in outcomes),
            sum(o.kind is OutcomeKind.SKIPPED for o in outcomes),
        )
        return outcomes

    def _reconcile_one(
        self,
        raw_id: str,
        from_status: str,
        into_status: str,
        domain: str,
        project: str,
    ) -> ReconcileOutcome:
        logger.debug("결함 ID 해석: %r", raw_id)
        defect_id = parse_defect_id(raw_id)

        existing = self._gateway.get_defect(domain, project, defect_id)
        logger.info("기존 결함: %s", existing)

        if from_status and not existing.status.startswith(from_status):
            reason = (
                f"상태가 {from_status!r}(으)로 시작해야 하지만 "
                f"{existing.status!r} 입니다"
            )
            logger.info("결함 %d 건너뜀: %s", defect_id, reason)
            return ReconcileOutcome(raw_id, OutcomeKind.SKIPPED, existing, reason)

        logger.info("결함 %d 상태 전환 → %r", defect_id, into_status)
        updated = self._gateway.put_defect(
            domain, project, Defect(id=defect_id, status=into_status),
        )
        logger.info("전환된 결함: %s", updated)
        return ReconcileOutcome(raw_id, OutcomeKind.UPDATED, updated)

    # ─── 조회 ────────────────────────────────────────────────────────────

    def list_defects(self) -> list[Defect]:
        """설정된 도메인/프로젝트의 결함 목록."""
        return self._gateway.list_defects(self._config.domain, self._config.project)

    def list_domains(self) -> list[Domain]:
        """ALM 도메인 목록."""
        return self._gateway.list_domains()

    def list_releases(self) -> list[Release]:
        """설정된 도메인/프로젝트의 릴리스 목록."""
        return self._gateway.list_releases(self._config.domain, self._config.project)
