"""배포 매니페스트 파서.

YAML 구조:
    tmt:
      domain: TMT_DOMAIN
      project: TMT_PROJECT
      defects:
        - "4711"
        - "4712"

검증 순서: 루트(tmt) → 본문 → domain → project.
defects가 비어 있는 것은 정상입니다 (버그 수정 없는 기능 릴리스).
"""

from __future__ import annotations

from typing import IO

import yaml

from alm_defect.exceptions import ManifestError, ManifestErrorKind
from alm_defect.models.defect import DeliveryManifest

ROOT_KEY = "tmt"


def _scalar(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _defect_ids(value: object) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list):
        raise ManifestError(
            ManifestErrorKind.INVALID_DOCUMENT,
            "/tmt/defects는 목록이어야 합니다",
        )
    ids = []
    for item in value:
        if item is None or isinstance(item, (dict, list)):
            raise ManifestError(
                ManifestErrorKind.INVALID_DOCUMENT,
                f"/tmt/defects 항목이 올바르지 않습니다: {item!r}",
            )
        ids.append(str(item).strip())
    return tuple(ids)


def validate_manifest(document: object) -> DeliveryManifest:
    """YAML로 읽은 문서를 검증하고 DeliveryManifest로 변환합니다.

    루트 섹션의 존재 여부는 기본값 비교가 아니라 키의 존재로 판단합니다.

    Raises:
        ManifestError: 검증 실패 시. 가장 먼저 실패한 검사의 종류를 담습니다.
    """
    if not isinstance(document, dict) or ROOT_KEY not in document:
        raise ManifestError(ManifestErrorKind.MISSING_ROOT)

    body = document[ROOT_KEY]
    if body is None or body == {}:
        raise ManifestError(ManifestErrorKind.EMPTY_SECTION)
    if not isinstance(body, dict):
        raise ManifestError(
            ManifestErrorKind.INVALID_DOCUMENT,
            "/tmt는 매핑이어야 합니다",
        )

    domain = _scalar(body.get("domain"))
    if not domain:
        raise ManifestError(ManifestErrorKind.MISSING_DOMAIN)

    project = _scalar(body.get("project"))
    if not project:
        raise ManifestError(ManifestErrorKind.MISSING_PROJECT)

    return DeliveryManifest(
        domain=domain,
        project=project,
        defect_ids=_defect_ids(body.get("defects")),
    )


def parse_manifest(stream: IO[bytes] | IO[str] | bytes | str) -> DeliveryManifest:
    """스트림(또는 문자열)에서 배포 매니페스트를 파싱합니다.

    Args:
        stream: 파일 객체, bytes 또는 str.

    Returns:
        검증된 매니페스트.

    Raises:
        ManifestError: YAML 문법 오류 또는 검증 실패 시.
    """
    try:
        raw = stream if isinstance(stream, (bytes, str)) else stream.read()
        document = yaml.safe_load(raw)
    except (UnicodeDecodeError, yaml.YAMLError) as e:
        raise ManifestError(ManifestErrorKind.INVALID_DOCUMENT, str(e)) from e
    return validate_manifest(document)
