"""배포 매니페스트 파서 단위 테스트."""

import io
import unittest

from alm_defect.exceptions import ManifestError, ManifestErrorKind
from alm_defect.models.defect import DeliveryManifest
from alm_defect.utils.manifest import parse_manifest, validate_manifest

DELIVERY_YAML = """\
tmt:
    domain: TMT_DOMAIN
    project: TMT_PROJECT
    defects:
        - 4711
        - "4712"
        - 4713
"""


class TestParseManifest(unittest.TestCase):
    """parse_manifest 함수 테스트."""

    def assertKind(self, raw, kind: ManifestErrorKind) -> None:
        with self.assertRaises(ManifestError) as cm:
            parse_manifest(raw)
        self.assertIs(cm.exception.kind, kind)

    def test_delivery(self) -> None:
        manifest = parse_manifest(io.BytesIO(DELIVERY_YAML.encode()))
        self.assertEqual(
            manifest,
            DeliveryManifest(
                domain="TMT_DOMAIN",
                project="TMT_PROJECT",
                defect_ids=("4711", "4712", "4713"),
            ),
        )

    def test_text_stream(self) -> None:
        manifest = parse_manifest(io.StringIO(DELIVERY_YAML))
        self.assertEqual(manifest.domain, "TMT_DOMAIN")

    def test_no_defects(self) -> None:
        """defects가 없어도 유효한 매니페스트."""
        manifest = parse_manifest("tmt:\n  domain: d1\n  project: p1\n")
        self.assertEqual(manifest.defect_ids, ())

    def test_empty_defect_list(self) -> None:
        manifest = parse_manifest("tmt:\n  domain: d1\n  project: p1\n  defects: []\n")
        self.assertEqual(manifest.defect_ids, ())

    # ─── 검증 순서 테스트 ────────────────────────────────────────────────

    def test_empty_document_is_missing_root(self) -> None:
        self.assertKind("", ManifestErrorKind.MISSING_ROOT)

    def test_unstructured_document_is_missing_root(self) -> None:
        self.assertKind("just some text\n", ManifestErrorKind.MISSING_ROOT)

    def test_other_root_is_missing_root(self) -> None:
        self.assertKind("release:\n  domain: d1\n", ManifestErrorKind.MISSING_ROOT)

    def test_empty_section(self) -> None:
        self.assertKind("tmt:\n", ManifestErrorKind.EMPTY_SECTION)

    def test_empty_mapping_section(self) -> None:
        self.assertKind("tmt: {}\n", ManifestErrorKind.EMPTY_SECTION)

    def test_present_but_blank_fields_is_missing_domain(self) -> None:
        """키가 있으면 값이 비어 있어도 EMPTY_SECTION이 아님."""
        self.assertKind(
            'tmt:\n  domain: ""\n  project: ""\n  defects: []\n',
            ManifestErrorKind.MISSING_DOMAIN,
        )

    def test_missing_domain(self) -> None:
        self.assertKind("tmt:\n  project: project1\n", ManifestErrorKind.MISSING_DOMAIN)

    def test_missing_domain_wins_over_missing_project(self) -> None:
        self.assertKind("tmt:\n  defects: ['1']\n", ManifestErrorKind.MISSING_DOMAIN)

    def test_missing_project(self) -> None:
        self.assertKind("tmt:\n  domain: domain1\n", ManifestErrorKind.MISSING_PROJECT)

    # ─── 형식 오류 ───────────────────────────────────────────────────────

    def test_invalid_yaml(self) -> None:
        self.assertKind("tmt: [unclosed\n", ManifestErrorKind.INVALID_DOCUMENT)

    def test_defects_not_a_list(self) -> None:
        self.assertKind(
            "tmt:\n  domain: d\n  project: p\n  defects: 4711\n",
            ManifestErrorKind.INVALID_DOCUMENT,
        )

    def test_error_message(self) -> None:
        with self.assertRaises(ManifestError) as cm:
            validate_manifest({})
        self.assertEqual(str(cm.exception), "missing required element tmt")


if __name__ == "__main__":
    unittest.main()
