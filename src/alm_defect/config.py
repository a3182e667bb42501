"""설정 관리 모듈.

명령행 인자, 환경변수, 설정 파일(~/.alm.yaml)을 병합하여
ALM 접속 설정을 만듭니다. 왼쪽 소스가 우선합니다(first-wins).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml

from alm_defect.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_ENV_PREFIX = "ALM_"
DEFAULT_CONFIG_NAME = ".alm.yaml"


@dataclass(frozen=True)
class AlmConfig:
    """ALM 접속 설정.

    빈 문자열과 0은 "설정되지 않음"을 의미합니다.
    """

    protocol: str = ""
    server: str = ""
    port: int = 0
    context_path: str = ""
    username: str = ""
    password: str = ""
    domain: str = ""
    project: str = ""
    from_status: str = ""
    into_status: str = ""

    def __repr__(self) -> str:
        parts = []
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "password" and value:
                value = "***"
            parts.append(f"{f.name}={value!r}")
        return f"AlmConfig({', '.join(parts)})"

    @property
    def base_url(self) -> str:
        """`{protocol}://{server}[:{port}]{context}` 형태의 기본 URL."""
        host = self.server
        if self.port:
            host = f"{host}:{self.port}"
        return f"{self.protocol}://{host}{self.context_path}"

    def with_scope(self, domain: str, project: str) -> AlmConfig:
        """도메인/프로젝트만 바꾼 새 설정을 반환합니다."""
        return replace(self, domain=domain, project=project)

    def require(self, *names: str, prefix: str = DEFAULT_ENV_PREFIX) -> None:
        """원격 호출 전에 필수 필드가 채워졌는지 확인합니다.

        Raises:
            ConfigError: 비어 있는 필드가 있을 때.
        """
        missing = [name for name in names if not getattr(self, name)]
        if missing:
            hints = ", ".join(
                f"--{_FIELD_BY_NAME[name].flag} / {prefix}{_FIELD_BY_NAME[name].env_key}"
                for name in missing
            )
            raise ConfigError(
                f"필수 설정이 비어 있습니다: {', '.join(missing)}\n"
                f"  설정 방법: {hints}"
            )


DEFAULTS = AlmConfig(protocol="https", context_path="/qcbin")


@dataclass(frozen=True)
class ConfigField:
    """설정 필드 하나의 외부 이름 매핑."""

    name: str
    env_key: str
    file_key: str
    flag: str


CONFIG_FIELDS: tuple[ConfigField, ...] = (
    ConfigField("protocol", "PROTOCOL", "protocol", "protocol"),
    ConfigField("server", "SERVER", "server", "server"),
    ConfigField("port", "PORT", "port", "port"),
    ConfigField("context_path", "CONTEXT", "context", "context"),
    ConfigField("username", "USERNAME", "username", "username"),
    ConfigField("password", "PASSWORD", "password", "password"),
    ConfigField("domain", "DOMAIN", "domain", "domain"),
    ConfigField("project", "PROJECT", "project", "project"),
    ConfigField("from_status", "FROMSTATUS", "fromstatus", "fromstatus"),
    ConfigField("into_status", "INTOSTATUS", "intostatus", "intostatus"),
)

_FIELD_BY_NAME = {f.name: f for f in CONFIG_FIELDS}


def _coerce(name: str, value: Any, source: str) -> Any:
    """필드 타입에 맞게 값을 변환합니다."""
    if value is None:
        return 0 if name == "port" else ""
    if name == "port":
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(
                f"{source}: port 값 {value!r}을(를) 정수로 변환할 수 없습니다."
            ) from e
    return str(value).strip()


def config_from_mapping(values: Mapping[str, Any], source: str = "인자") -> AlmConfig:
    """필드명 → 값 매핑에서 부분 설정을 만듭니다. 모르는 키는 무시합니다."""
    kwargs = {
        name: _coerce(name, value, source)
        for name, value in values.items()
        if name in _FIELD_BY_NAME
    }
    return AlmConfig(**kwargs)


def resolve_config(sources: Iterable[AlmConfig]) -> AlmConfig:
    """여러 부분 설정을 하나로 병합합니다.

    필드마다 처음으로 설정된(비어 있지 않은) 값이 이깁니다.
    뒤쪽 소스는 앞에서 이미 채워진 필드를 덮어쓰지 않습니다.

    Examples:
        >>> resolve_config([AlmConfig(server="A"), AlmConfig(server="B")]).server
        'A'
    """
    merged: dict[str, Any] = {}
    for source in sources:
        for f in CONFIG_FIELDS:
            if f.name in merged:
                continue
            value = getattr(source, f.name)
            if value:
                merged[f.name] = value
    return AlmConfig(**merged)


def read_env(prefix: str = DEFAULT_ENV_PREFIX, environ: Mapping[str, str] | None = None) -> AlmConfig:
    """`{prefix}{NAME}` 환경변수에서 부분 설정을 읽습니다."""
    env = os.environ if environ is None else environ
    values = {}
    for f in CONFIG_FIELDS:
        key = f"{prefix}{f.env_key}"
        value = env.get(key, "").strip()
        if not value:
            continue
        logger.debug("환경변수 사용: %s", key)
        values[f.name] = value
    return config_from_mapping(values, source="환경변수")


def default_config_path() -> Path:
    """기본 설정 파일 경로 (`~/.alm.yaml`)."""
    return Path.home() / DEFAULT_CONFIG_NAME


def read_config_file(path: Path | None = None) -> AlmConfig:
    """YAML 설정 파일에서 부분 설정을 읽습니다.

    Args:
        path: 설정 파일 경로. None이면 기본 경로를 사용하며,
            기본 경로에 파일이 없으면 빈 설정을 반환합니다.

    Raises:
        ConfigError: 명시한 파일이 없거나, YAML 매핑으로 해석할 수 없을 때.
    """
    explicit = path is not None
    path = Path(path) if explicit else default_config_path()

    if not path.exists():
        if explicit:
            raise ConfigError(f"설정 파일을 찾을 수 없습니다: {path}")
        logger.debug("설정 파일 없음, 건너뜀: %s", path)
        return AlmConfig()

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"설정 파일 파싱 실패 {path}: {e}") from e

    if data is None:
        return AlmConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"설정 파일 {path}의 최상위는 매핑이어야 합니다.")

    by_file_key = {f.file_key: f.name for f in CONFIG_FIELDS}
    values = {
        by_file_key[str(key).lower()]: value
        for key, value in data.items()
        if str(key).lower() in by_file_key
    }
    logger.debug("설정 파일 로드: %s", path)
    return config_from_mapping(values, source=str(path))
