"""CLI 단위 테스트 (AlmService 모킹)."""

import contextlib
import io
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from alm_defect import cli
from alm_defect.exceptions import AuthError, TransportError
from alm_defect.models.defect import Defect, Domain

DELIVERY_YAML = """\
tmt:
  domain: TMT_DOMAIN
  project: TMT_PROJECT
  defects: ["4711", "4712", "4713"]
"""


class TestCli(unittest.TestCase):
    """cli.main 테스트."""

    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.config_path = Path(tmp.name) / "alm.yaml"
        self.config_path.write_text(
            "server: alm.example.com\nusername: bob\npassword: secret\n"
            "domain: CFG_DOMAIN\nproject: CFG_PROJECT\n",
            encoding="utf-8",
        )

        env = mock.patch.dict(os.environ, {}, clear=True)
        env.start()
        self.addCleanup(env.stop)

        self.gateway = mock.Mock()
        self.gateway.sign_out.return_value = True
        self.gateway.get_defect.side_effect = lambda d, p, i: Defect(id=i, status="Open")
        self.gateway.put_defect.side_effect = lambda d, p, defect: defect

        patcher = mock.patch("alm_defect.cli.AlmService", return_value=self.gateway)
        self.service_cls = patcher.start()
        self.addCleanup(patcher.stop)

    def _run(self, *argv: str, stdin: str | bytes = "") -> tuple[int, str, str]:
        out, err = io.StringIO(), io.StringIO()
        code = 0
        raw = stdin.encode("utf-8") if isinstance(stdin, str) else stdin
        fake_stdin = io.TextIOWrapper(io.BytesIO(raw), encoding="utf-8")
        with mock.patch("sys.stdin", fake_stdin), \
                contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
            try:
                cli.main(["--config", str(self.config_path), *argv])
            except SystemExit as e:
                code = e.code
        return code, out.getvalue(), err.getvalue()

    def test_update(self) -> None:
        code, out, _ = self._run("--intostatus", "Closed", "update", "4711", "4712")

        self.assertEqual(code, 0)
        self.assertIn("updated 2, skipped 0", out)
        self.gateway.put_defect.assert_any_call("CFG_DOMAIN", "CFG_PROJECT", Defect(id=4711, status="Closed"))
        self.gateway.sign_in.assert_called_once()
        self.gateway.sign_out.assert_called_once()

    def test_flags_override_config_file(self) -> None:
        self._run("--server", "other", "--intostatus", "Closed", "update", "1")
        config = self.service_cls.call_args.args[0]
        self.assertEqual(config.server, "other")
        self.assertEqual(config.username, "bob")
        self.assertEqual(config.protocol, "https")

    def test_env_between_flags_and_file(self) -> None:
        os.environ["ALM_USERNAME"] = "alice"
        os.environ["ALM_INTOSTATUS"] = "Closed"
        code, _, _ = self._run("update", "1")
        self.assertEqual(code, 0)
        self.assertEqual(self.service_cls.call_args.args[0].username, "alice")

    def test_from_status_skips(self) -> None:
        code, out, _ = self._run("--fromstatus", "Closed", "--intostatus", "Closed", "update", "1")
        self.assertEqual(code, 0)
        self.assertIn("updated 0, skipped 1", out)
        self.gateway.put_defect.assert_not_called()

    def test_delivery_uses_manifest_scope(self) -> None:
        code, out, _ = self._run("--intostatus", "Closed", "delivery", stdin=DELIVERY_YAML)

        self.assertEqual(code, 0)
        self.assertIn("updated 3, skipped 0", out)
        self.assertEqual(
            [c.args[2] for c in self.gateway.get_defect.call_args_list],
            [4711, 4712, 4713],
        )
        self.gateway.get_defect.assert_any_call("TMT_DOMAIN", "TMT_PROJECT", 4711)

    def test_delivery_parse_error_exit_code(self) -> None:
        code, _, err = self._run("--intostatus", "Closed", "delivery", stdin="tmt:\n")
        self.assertEqual(code, cli.EXIT_PARSING)
        self.assertIn("empty tmt", err)
        self.gateway.sign_in.assert_not_called()

    def test_delivery_invalid_utf8_exit_code(self) -> None:
        code, _, err = self._run(
            "--intostatus", "Closed", "delivery",
            stdin=b"tmt:\n  domain: \xff\xfe\n  project: p\n",
        )
        self.assertEqual(code, cli.EXIT_PARSING)
        self.assertIn("malformed delivery document", err)
        self.gateway.sign_in.assert_not_called()

    def test_missing_setting_hint_uses_active_prefix(self) -> None:
        code, _, err = self._run("--prefix", "X_", "update", "1")
        self.assertEqual(code, cli.EXIT_ERROR)
        self.assertIn("X_INTOSTATUS", err)
        self.assertNotIn("ALM_INTOSTATUS", err)

    def test_invalid_id_aborts_and_signs_out(self) -> None:
        code, out, err = self._run("--intostatus", "Closed", "update", "4711", "47x2", "4713")

        self.assertEqual(code, cli.EXIT_ERROR)
        self.assertIn("47x2", err)
        self.assertEqual(self.gateway.get_defect.call_count, 1)
        self.gateway.sign_out.assert_called_once()

    def test_transport_error_signs_out(self) -> None:
        self.gateway.list_domains.side_effect = TransportError("down")
        code, _, _ = self._run("domains")
        self.assertEqual(code, cli.EXIT_ERROR)
        self.gateway.sign_out.assert_called_once()

    def test_sign_in_failure(self) -> None:
        self.gateway.sign_in.side_effect = AuthError("denied", status_code=401)
        code, _, err = self._run("domains")
        self.assertEqual(code, cli.EXIT_ERROR)
        self.assertIn("denied", err)
        self.gateway.sign_out.assert_not_called()

    def test_domains(self) -> None:
        self.gateway.list_domains.return_value = [Domain("DEFAULT"), Domain("TMT")]
        code, out, _ = self._run("domains")
        self.assertEqual(code, 0)
        self.assertEqual(out.split(), ["DEFAULT", "TMT"])

    def test_release_is_default_action(self) -> None:
        self.gateway.list_releases.return_value = []
        code, _, _ = self._run()
        self.assertEqual(code, 0)
        self.gateway.list_releases.assert_called_once_with("CFG_DOMAIN", "CFG_PROJECT")

    def test_missing_into_status(self) -> None:
        code, _, err = self._run("update", "1")
        self.assertEqual(code, cli.EXIT_ERROR)
        self.assertIn("into_status", err)
        self.gateway.sign_in.assert_not_called()

    def test_unknown_action_is_usage_error(self) -> None:
        code, _, _ = self._run("frobnicate")
        self.assertEqual(code, cli.EXIT_USAGE)

    def test_update_without_ids_is_usage_error(self) -> None:
        code, _, _ = self._run("update")
        self.assertEqual(code, cli.EXIT_USAGE)


if __name__ == "__main__":
    unittest.main()
