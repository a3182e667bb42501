"""ALM Defect - CLI.

사용법:
    alm-defect domains                                   # 도메인 목록
    alm-defect --domain D --project P defects            # 결함 목록
    alm-defect --intostatus Closed delivery < release.yml  # 매니페스트 결함 상태 전환
    alm-defect --domain D --project P --intostatus Closed update 4711 4712
    alm-defect --domain D --project P [release]          # 릴리스 목록 (기본 동작)

종료 코드:
    0: 성공, 1: 일반 오류, 2: 잘못된 사용법, 3: 매니페스트 파싱 오류
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from alm_defect.config import (
    DEFAULT_ENV_PREFIX,
    DEFAULTS,
    AlmConfig,
    config_from_mapping,
    read_config_file,
    read_env,
    resolve_config,
)
from alm_defect.exceptions import AlmDefectError, ManifestError, ReconcileError
from alm_defect.facades.reconcile_facade import ReconcileFacade, signed_in
from alm_defect.models.defect import OutcomeKind, ReconcileOutcome
from alm_defect.services.alm_service import AlmService
from alm_defect.utils.manifest import parse_manifest

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_USAGE = 2
EXIT_PARSING = 3

# 명령별 필수 설정 (server/username은 항상 필요)
_REQUIRED = {
    "defects": ("domain", "project"),
    "delivery": ("into_status",),
    "domains": (),
    "update": ("domain", "project", "into_status"),
    "release": ("domain", "project"),
}


def _setup_logging(verbose: bool) -> None:
    """로깅을 설정합니다."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _print_outcomes(outcomes: list[ReconcileOutcome]) -> None:
    """상태 전환 결과를 출력합니다."""
    marks = {
        OutcomeKind.UPDATED: "✅",
        OutcomeKind.SKIPPED: "⏭️",
        OutcomeKind.FAILED: "❌",
    }
    print()
    for o in outcomes:
        line = f"  {marks[o.kind]} {o.defect_id}: {o.kind.value}"
        if o.defect is not None and o.kind is OutcomeKind.UPDATED:
            line += f" → {o.defect.status}"
        if o.reason:
            line += f" ({o.reason})"
        print(line)
    updated = sum(o.kind is OutcomeKind.UPDATED for o in outcomes)
    skipped = sum(o.kind is OutcomeKind.SKIPPED for o in outcomes)
    print(f"\n  updated {updated}, skipped {skipped}")


# ─── 서브커맨드 핸들러 ────────────────────────────────────────────────────


def _handle_defects(facade: ReconcileFacade, args: argparse.Namespace) -> None:
    """결함 목록 출력."""
    for d in facade.list_defects():
        print(f"{d.id}\t{d.status}\t{d.type}\t{d.subject}")


def _handle_delivery(facade: ReconcileFacade, args: argparse.Namespace) -> None:
    """매니페스트에 포함된 결함 상태 전환."""
    _print_outcomes(facade.reconcile(args.manifest))


def _handle_domains(facade: ReconcileFacade, args: argparse.Namespace) -> None:
    """도메인 목록 출력."""
    for domain in facade.list_domains():
        print(domain.name)


def _handle_update(facade: ReconcileFacade, args: argparse.Namespace) -> None:
    """명령행 결함 ID 상태 전환."""
    _print_outcomes(facade.reconcile_ids(args.defect_ids))


def _handle_release(facade: ReconcileFacade, args: argparse.Namespace) -> None:
    """릴리스 목록 출력."""
    for r in facade.list_releases():
        print(f"{r.id}\t{r.name}\t{r.status}")


HANDLERS = {
    "defects": _handle_defects,
    "delivery": _handle_delivery,
    "domains": _handle_domains,
    "update": _handle_update,
    "release": _handle_release,
}


# ─── CLI 파서 ────────────────────────────────────────────────────────────


def _build_parser() -> argparse.ArgumentParser:
    """CLI 인자 파서를 구성합니다."""
    parser = argparse.ArgumentParser(
        prog="alm-defect",
        description="ALM 결함 조회 및 배포 매니페스트 기반 상태 전환 도구",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="상세 로그 출력")

    conn = parser.add_argument_group("ALM 접속")
    conn.add_argument("--protocol", help="ALM 서버 프로토콜 (기본: https)")
    conn.add_argument("--server", help="ALM 서버 주소")
    conn.add_argument("--port", type=int, help="ALM 서버 포트")
    conn.add_argument("--context", dest="context_path", help="ALM 웹 루트 (기본: /qcbin)")
    conn.add_argument("--username", help="ALM 사용자명")
    conn.add_argument("--password", help="ALM 비밀번호")
    conn.add_argument("--domain", help="ALM 도메인")
    conn.add_argument("--project", help="ALM 프로젝트")
    conn.add_argument(
        "--fromstatus", dest="from_status",
        help="이 상태로 시작하는 결함만 전환",
    )
    conn.add_argument("--intostatus", dest="into_status", help="전환할 상태")
    conn.add_argument(
        "--insecure", action="store_true",
        help="TLS 인증서 검증 끄기 (권장하지 않음)",
    )

    src = parser.add_argument_group("설정 소스")
    src.add_argument(
        "--config", type=Path, default=None,
        help="설정 파일 (기본: ~/.alm.yaml)",
    )
    src.add_argument(
        "--prefix", default=DEFAULT_ENV_PREFIX,
        help=f"환경변수 접두어 (기본: {DEFAULT_ENV_PREFIX})",
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("defects", help="결함 목록")

    p_delivery = sub.add_parser("delivery", help="매니페스트 결함 상태 전환")
    p_delivery.add_argument(
        "--file", "-f", type=Path, default=None,
        help="매니페스트 파일 (기본: 표준 입력)",
    )

    sub.add_parser("domains", help="도메인 목록")

    p_update = sub.add_parser("update", help="결함 ID 상태 전환")
    p_update.add_argument("defect_ids", nargs="+", metavar="ID", help="결함 ID")

    sub.add_parser("release", help="릴리스 목록 (기본 동작)")

    return parser


def build_config(args: argparse.Namespace) -> AlmConfig:
    """명령행 → 환경변수 → 설정 파일 → 기본값 순으로 설정을 병합합니다."""
    flags = config_from_mapping(vars(args), source="명령행")
    env = read_env(args.prefix)
    file_config = read_config_file(args.config)
    config = resolve_config([flags, env, file_config, DEFAULTS])
    logger.debug("사용할 ALM 설정: %r", config)
    return config


def _read_manifest(args: argparse.Namespace):
    if args.file is None:
        return parse_manifest(sys.stdin.buffer)
    with args.file.open("rb") as f:
        return parse_manifest(f)


# ─── 메인 ────────────────────────────────────────────────────────────────


def main(argv: list[str] | None = None) -> None:
    """CLI 메인 함수."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    args.command = args.command or "release"
    _setup_logging(args.verbose)

    try:
        config = build_config(args)

        if args.command == "delivery":
            args.manifest = _read_manifest(args)
            config = config.with_scope(args.manifest.domain, args.manifest.project)

        config.require("server", "username", *_REQUIRED[args.command], prefix=args.prefix)

        service = AlmService(config, insecure=args.insecure)
        facade = ReconcileFacade(config, service)

        logger.info("동작 실행: %s", args.command)
        with signed_in(service):
            HANDLERS[args.command](facade, args)

    except ManifestError as e:
        print(f"\n❌ 매니페스트 파싱 오류: {e}", file=sys.stderr)
        sys.exit(EXIT_PARSING)
    except ReconcileError as e:
        _print_outcomes(e.outcomes)
        print(f"\n❌ {e}", file=sys.stderr)
        sys.exit(EXIT_ERROR)
    except (AlmDefectError, OSError) as e:
        print(f"\n❌ {e}", file=sys.stderr)
        sys.exit(EXIT_ERROR)
    except KeyboardInterrupt:
        print("\n👋 중단되었습니다.")
        sys.exit(130)
