"""ALM REST API 서비스.

로그인/로그아웃, 결함 조회/저장, 도메인·릴리스 목록 기능을 제공합니다.
ALM REST API: https://admhelp.microfocus.com/alm/en/12.55/api_refs/REST/Content/REST_API/sign_in.htm

세션 쿠키는 requests.Session이 관리합니다.
2xx가 아닌 응답은 경고만 남기고 본문을 그대로 해석합니다.
"""

from __future__ import annotations

import logging

import requests

from alm_defect.config import AlmConfig
from alm_defect.exceptions import AuthError, DecodeError, TransportError
from alm_defect.models.defect import Defect, Domain, Release

logger = logging.getLogger(__name__)

SIGN_IN_PATH = "/api/authentication/sign-in"
SIGN_OUT_PATH = "/api/authentication/sign-out"
DOMAINS_PATH = "/api/domains"

DEFAULT_TIMEOUT = 30


def defects_path(domain: str, project: str, defect_id: int | None = None) -> str:
    """결함(목록) 리소스의 상대 경로."""
    path = f"/api/domains/{domain}/projects/{project}/defects"
    if defect_id is not None:
        path = f"{path}/{defect_id}"
    return path


def releases_path(domain: str, project: str) -> str:
    """릴리스 목록 리소스의 상대 경로."""
    return f"/api/domains/{domain}/projects/{project}/releases"


class AlmService:
    """ALM REST API를 캡슐화하는 서비스 클래스."""

    def __init__(
        self,
        config: AlmConfig,
        insecure: bool = False,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        self._config = config
        self._timeout = timeout
        self._session = session or self._build_session(insecure)

    @staticmethod
    def _build_session(insecure: bool) -> requests.Session:
        """쿠키를 유지하는 HTTP 세션을 생성합니다."""
        session = requests.Session()
        session.headers.update({"Accept": "application/json"})
        if insecure:
            logger.warning("TLS 인증서 검증을 끕니다 (권장하지 않음)")
            session.verify = False
        return session

    def url(self, path: str) -> str:
        return f"{self._config.base_url}{path}"

    def _send(self, method: str, path: str, **kwargs) -> requests.Response:
        """요청을 보내고 전송 계층 오류를 TransportError로 바꿉니다."""
        url = self.url(path)
        logger.debug("%s %s", method, url)

        try:
            resp = self._session.request(method, url, timeout=self._timeout, **kwargs)
        except requests.ConnectionError as e:
            raise TransportError(f"ALM 서버 연결 실패: {e}") from e
        except requests.Timeout as e:
            raise TransportError(f"ALM API 요청 시간 초과 ({self._timeout}초)") from e
        except requests.RequestException as e:
            raise TransportError(f"ALM API 요청 실패: {e}") from e

        if not 200 <= resp.status_code < 300:
            logger.warning("경고: HTTP 상태 코드 %d (%s %s)", resp.status_code, method, url)
        return resp

    def _request(self, method: str, path: str, **kwargs) -> dict:
        """요청 후 JSON 객체 본문을 반환합니다."""
        resp = self._send(method, path, **kwargs)
        try:
            data = resp.json()
        except ValueError as e:
            raise DecodeError(
                f"ALM 응답을 JSON으로 해석할 수 없습니다 (HTTP {resp.status_code}): "
                f"{resp.text[:200]}",
                status_code=resp.status_code,
            ) from e
        if not isinstance(data, dict):
            raise DecodeError(
                f"ALM 응답이 JSON 객체가 아닙니다 (HTTP {resp.status_code})",
                status_code=resp.status_code,
            )
        return data

    def _results(self, path: str) -> list[dict]:
        """`results` 배열로 감싼 목록 응답을 풉니다."""
        data = self._request("GET", path)
        results = data.get("results") or []
        if not isinstance(results, list) or not all(isinstance(r, dict) for r in results):
            raise DecodeError(f"ALM 목록 응답 형식이 올바르지 않습니다: {path}")
        return results

    # ─── 인증 ────────────────────────────────────────────────────────────

    def sign_in(self) -> None:
        """Basic 인증으로 ALM 세션을 엽니다.

        Raises:
            AuthError: 서버가 200 이외의 상태로 응답할 때.
            TransportError: 서버에 연결할 수 없을 때.
        """
        logger.info("로그인: %s", self._config.username)
        resp = self._send(
            "GET",
            SIGN_IN_PATH,
            auth=(self._config.username, self._config.password),
        )
        if resp.status_code != 200:
            raise AuthError(
                f"ALM 로그인 실패 (HTTP {resp.status_code})",
                status_code=resp.status_code,
            )
        logger.info("로그인 완료: %s", self._config.username)

    def sign_out(self) -> bool:
        """ALM 세션을 닫습니다.

        Returns:
            서버가 200으로 응답했는지 여부. 실패해도 예외를 던지지 않습니다
            (전송 계층 오류는 TransportError로 전달됩니다).
        """
        logger.info("로그아웃: %s", self._config.username)
        resp = self._send("GET", SIGN_OUT_PATH)
        if resp.status_code != 200:
            logger.warning(
                "로그아웃 응답이 200이 아닙니다: %d", resp.status_code,
            )
            return False
        return True

    # ─── 결함 ────────────────────────────────────────────────────────────

    def get_defect(self, domain: str, project: str, defect_id: int) -> Defect:
        """결함 하나를 조회합니다.

        Raises:
            TransportError: 통신 실패 시.
            DecodeError: 응답 본문을 결함으로 해석할 수 없을 때.
        """
        data = self._request("GET", defects_path(domain, project, defect_id))
        return self._to_defect(data)

    def put_defect(self, domain: str, project: str, defect: Defect) -> Defect:
        """결함 레코드를 통째로 교체합니다 (PUT).

        Raises:
            TransportError: 통신 실패 시.
            DecodeError: 응답 본문을 결함으로 해석할 수 없을 때.
        """
        data = self._request(
            "PUT",
            defects_path(domain, project, defect.id),
            json=defect.to_payload(),
        )
        return self._to_defect(data)

    def list_defects(self, domain: str, project: str) -> list[Defect]:
        """프로젝트의 결함 목록을 조회합니다."""
        return [self._to_defect(d) for d in self._results(defects_path(domain, project))]

    @staticmethod
    def _to_defect(data: dict) -> Defect:
        try:
            return Defect.from_api_response(data)
        except (TypeError, ValueError) as e:
            raise DecodeError(f"결함 응답을 해석할 수 없습니다: {e}") from e

    # ─── 도메인 / 릴리스 ─────────────────────────────────────────────────

    def list_domains(self) -> list[Domain]:
        """사용 가능한 ALM 도메인 목록을 조회합니다."""
        return [Domain.from_api_response(d) for d in self._results(DOMAINS_PATH)]

    def list_releases(self, domain: str, project: str) -> list[Release]:
        """프로젝트의 릴리스 목록을 조회합니다."""
        results = self._results(releases_path(domain, project))
        try:
            return [Release.from_api_response(r) for r in results]
        except (TypeError, ValueError) as e:
            raise DecodeError(f"릴리스 응답을 해석할 수 없습니다: {e}") from e
