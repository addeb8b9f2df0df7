import re
import tempfile
import unittest
from datetime import datetime
from pathlib import Path

from dlcpacker.core.errors import TemplateError
from dlcpacker.core.manifest import (
    CONTENT_XML_TEMPLATE,
    SETUP2_XML_TEMPLATE,
    ManifestTemplate,
    format_timestamp,
    render_content_manifest,
    render_setup_manifest,
    write_manifest,
)
from dlcpacker.core.naming import derive_names

_TOKEN_RE = re.compile(r"\{\{[^{}]*\}\}")


def _expected(template: str, values: dict) -> str:
    out = template
    for key, value in values.items():
        out = out.replace("{{" + key + "}}", value)
    return out


class TestManifestTemplate(unittest.TestCase):
    def test_undeclared_placeholder_rejected_at_build_time(self):
        with self.assertRaises(TemplateError):
            ManifestTemplate("bad", "<a>{{KNOWN}}{{UNKNOWN}}</a>", ["KNOWN"])

    def test_missing_value_left_as_literal(self):
        t = ManifestTemplate("t", "<a>{{ONE}}-{{TWO}}</a>", ["ONE", "TWO"])
        self.assertEqual(t.render({"ONE": "1"}), "<a>1-TWO</a>")

    def test_every_occurrence_replaced(self):
        t = ManifestTemplate("t", "{{X}}/{{X}}_SUFFIX", ["X"])
        self.assertEqual(t.render({"X": "abc"}), "abc/abc_SUFFIX")

    def test_unknown_value_key_rejected(self):
        t = ManifestTemplate("t", "{{X}}", ["X"])
        with self.assertRaises(TemplateError):
            t.render({"Y": "1"})


class TestManifestRendering(unittest.TestCase):
    def setUp(self):
        self.names = derive_names("Test Area")

    def test_content_manifest(self):
        text = render_content_manifest(self.names, "MO_JIM_L11")
        self.assertIsNone(_TOKEN_RE.search(text))
        self.assertIn("<filename>dlc_testarea:/%PLATFORM%/testarea.rpf</filename>", text)
        self.assertIn("<Item>dlc_TESTAREA:/%PLATFORM%/testarea.rpf</Item>", text)
        self.assertIn("<changeSetName>TESTAREA_STREAMING</changeSetName>", text)
        self.assertIn("<genericConditions>$level=MO_JIM_L11</genericConditions>", text)
        self.assertIn("<associatedMap>MO_JIM_L11</associatedMap>", text)

        expected = _expected(
            CONTENT_XML_TEMPLATE,
            {
                "DLC_NAME_LOWER": "dlc_testarea",
                "DLC_NAME_UPPER": "dlc_TESTAREA",
                "MAPPING_BASE_NAME_LOWER": "testarea",
                "MAPPING_BASE_NAME_UPPER": "TESTAREA",
                "LEVEL_NAME_HASH": "MO_JIM_L11",
            },
        )
        self.assertEqual(text, expected)

    def test_content_manifest_uses_name_set_level_hash_by_default(self):
        names = derive_names("x", level_hash="CUSTOM_L2")
        self.assertIn("$level=CUSTOM_L2", render_content_manifest(names))

    def test_setup_manifest(self):
        ts = datetime(2024, 3, 7, 15, 4, 5)
        text = render_setup_manifest(self.names, ts)
        self.assertIsNone(_TOKEN_RE.search(text))
        self.assertIn("<deviceName>dlc_TESTAREA</deviceName>", text)
        self.assertIn("<nameHash>testarea</nameHash>", text)
        self.assertIn("<timeStamp>3/7/2024, 3:04:05 PM</timeStamp>", text)

        expected = _expected(
            SETUP2_XML_TEMPLATE,
            {
                "DLC_NAME_UPPER": "dlc_TESTAREA",
                "MAPPING_BASE_NAME_LOWER": "testarea",
                "MAPPING_BASE_NAME_UPPER": "TESTAREA",
                "TIMESTAMP_PLACEHOLDER": "3/7/2024, 3:04:05 PM",
            },
        )
        self.assertEqual(text, expected)

    def test_documents_keep_game_file_layout(self):
        content = render_content_manifest(self.names, "MO_JIM_L11")
        setup = render_setup_manifest(self.names, datetime(2024, 3, 7, 15, 4, 5))

        self.assertIn("\t\t<!-- next Part -->\n\t\t<Item>\n", content)
        self.assertIn("<!-- Mapping ymap archiv -->", content)
        self.assertIn("\n\t<disabledFiles />\n", content)
        self.assertIn("\n      <changeSetName>TESTAREA_STREAMING</changeSetName>\n", content)
        self.assertTrue(content.endswith("</CDataFileMgr__ContentsOfDataFileXml>"))

        self.assertIn("\n\t<deviceName>dlc_TESTAREA</deviceName>\n", setup)
        self.assertIn("\n      <NameHash>GROUP_MAP</NameHash>\n", setup)
        self.assertTrue(setup.endswith("</SSetupData>"))

    def test_timestamp_twelve_hour_clock(self):
        self.assertEqual(format_timestamp(datetime(2023, 12, 31, 0, 0, 9)), "12/31/2023, 12:00:09 AM")
        self.assertEqual(format_timestamp(datetime(2023, 1, 1, 12, 30, 0)), "1/1/2023, 12:30:00 PM")
        self.assertEqual(format_timestamp(datetime(2023, 6, 15, 23, 59, 59)), "6/15/2023, 11:59:59 PM")

    def test_write_manifest(self):
        with tempfile.TemporaryDirectory() as td:
            path = write_manifest("<x/>", str(Path(td) / "stage" / "content.xml"))
            self.assertEqual(Path(path).read_text(encoding="utf-8"), "<x/>")


if __name__ == "__main__":
    unittest.main()
