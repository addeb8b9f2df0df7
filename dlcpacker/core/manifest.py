from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Mapping, Optional

from dlcpacker.core.errors import TemplateError
from dlcpacker.models import NameSet

_PLACEHOLDER_RE = re.compile(r"\{\{([^{}]*)\}\}")

DLC_NAME_LOWER = "DLC_NAME_LOWER"
DLC_NAME_UPPER = "DLC_NAME_UPPER"
MAPPING_BASE_NAME_LOWER = "MAPPING_BASE_NAME_LOWER"
MAPPING_BASE_NAME_UPPER = "MAPPING_BASE_NAME_UPPER"
LEVEL_NAME_HASH = "LEVEL_NAME_HASH"
TIMESTAMP_PLACEHOLDER = "TIMESTAMP_PLACEHOLDER"


class ManifestTemplate:
    """
    A fixed document with named `{{PLACEHOLDER}}` slots.

    Every slot the text uses must be declared up front; an undeclared slot
    raises TemplateError when the template is built, not when it renders.
    """

    def __init__(self, name: str, text: str, placeholders: Iterable[str]):
        self.name = name
        self.text = text
        self.placeholders: FrozenSet[str] = frozenset(placeholders)

        used = {m.group(1).strip() for m in _PLACEHOLDER_RE.finditer(text)}
        undeclared = sorted(used - self.placeholders)
        if undeclared:
            raise TemplateError(
                f"Template '{name}' references undeclared placeholder(s): {', '.join(undeclared)}"
            )
        self.used: FrozenSet[str] = frozenset(used)

    def render(self, values: Mapping[str, str]) -> str:
        unknown = sorted(set(values) - self.placeholders)
        if unknown:
            raise TemplateError(f"Template '{self.name}' has no placeholder(s): {', '.join(unknown)}")

        def _sub(m: re.Match) -> str:
            key = m.group(1).strip()
            if key in values:
                return str(values[key])
            # missing values stay as their literal token
            return key

        return _PLACEHOLDER_RE.sub(_sub, self.text)


CONTENT_XML_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<CDataFileMgr__ContentsOfDataFileXml>
	<disabledFiles />
	<includedXmlFiles />
	<includedDataFiles />
	<dataFiles>
		<Item>
			<filename>{{DLC_NAME_LOWER}}:/%PLATFORM%/{{MAPPING_BASE_NAME_LOWER}}.rpf</filename>
			<fileType>RPF_FILE</fileType>
			<locked value="true"/>
			<disabled value="true"/>
			<persistent value="true"/>
			<overlay value="true"/>
		</Item>
	</dataFiles>
	<contentChangeSets>
		<Item>
			<changeSetName>{{MAPPING_BASE_NAME_UPPER}}_STARTUP</changeSetName>
			<filesToEnable>
				<!-- NULL -->
      </filesToEnable>
		</Item>
		<Item>
      <changeSetName>{{MAPPING_BASE_NAME_UPPER}}_STREAMING</changeSetName>
      <filesToEnable>
      	<!-- Mapping ymap archiv -->
				<Item>{{DLC_NAME_UPPER}}:/%PLATFORM%/{{MAPPING_BASE_NAME_LOWER}}.rpf</Item>
      </filesToEnable>
      <executionConditions>
        <activeChangesetConditions>
        </activeChangesetConditions>
        <genericConditions>$level={{LEVEL_NAME_HASH}}</genericConditions>
      </executionConditions>
    </Item>
		<!-- next Part -->
		<Item>
      <changeSetName>{{MAPPING_BASE_NAME_UPPER}}_MAP</changeSetName>
      <mapChangeSetData>
        <Item>
          <associatedMap>{{LEVEL_NAME_HASH}}</associatedMap>
          <filesToInvalidate />
          <filesToEnable>
						<Item>{{DLC_NAME_UPPER}}:/%PLATFORM%/{{MAPPING_BASE_NAME_LOWER}}.rpf</Item>
          </filesToEnable>
        </Item>
      </mapChangeSetData>
      <requiresLoadingScreen value="false"/>
      <loadingScreenContext>LOADINGSCREEN_CONTEXT_LAST_FRAME</loadingScreenContext>
      <useCacheLoader value="false"/>
    </Item>
	</contentChangeSets>
	<patchFiles />
</CDataFileMgr__ContentsOfDataFileXml>"""

SETUP2_XML_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<SSetupData>
	<deviceName>{{DLC_NAME_UPPER}}</deviceName>
	<datFile>content.xml</datFile>
	<timeStamp>{{TIMESTAMP_PLACEHOLDER}}</timeStamp>
	<nameHash>{{MAPPING_BASE_NAME_LOWER}}</nameHash>
	<contentChangeSets />
	<contentChangeSetGroups>
		<Item>
			<NameHash>GROUP_STARTUP</NameHash>
			<ContentChangeSets>
				<Item>{{MAPPING_BASE_NAME_UPPER}}_STARTUP</Item>
			</ContentChangeSets>
		</Item>
		<Item>
      <NameHash>GROUP_MAP</NameHash>
      <ContentChangeSets>
        <Item>{{MAPPING_BASE_NAME_UPPER}}_MAP</Item>
      </ContentChangeSets>
    </Item>
		<Item>
      <NameHash>GROUP_UPDATE_STREAMING</NameHash>
      <ContentChangeSets>
        <Item>{{MAPPING_BASE_NAME_UPPER}}_STREAMING</Item>
      </ContentChangeSets>
    </Item>
	</contentChangeSetGroups>
	<startupScript />
	<scriptCallstackSize value="0" />
	<type>EXTRACONTENT_COMPAT_PACK</type>
	<order value="25" />
	<minorOrder value="0" />
	<isLevelPack value="false" />
	<dependencyPackHash />
	<requiredVersion />
	<subPackCount value="0" />
</SSetupData>"""

CONTENT_TEMPLATE = ManifestTemplate(
    "content.xml",
    CONTENT_XML_TEMPLATE,
    [DLC_NAME_LOWER, DLC_NAME_UPPER, MAPPING_BASE_NAME_LOWER, MAPPING_BASE_NAME_UPPER, LEVEL_NAME_HASH],
)

SETUP_TEMPLATE = ManifestTemplate(
    "setup2.xml",
    SETUP2_XML_TEMPLATE,
    [DLC_NAME_UPPER, MAPPING_BASE_NAME_LOWER, MAPPING_BASE_NAME_UPPER, TIMESTAMP_PLACEHOLDER],
)


def format_timestamp(dt: datetime) -> str:
    """
    en-US style "M/D/YYYY, h:MM:SS AM" regardless of the process locale.
    """
    hour12 = dt.hour % 12 or 12
    suffix = "AM" if dt.hour < 12 else "PM"
    return f"{dt.month}/{dt.day}/{dt.year}, {hour12}:{dt.minute:02d}:{dt.second:02d} {suffix}"


def render_content_manifest(names: NameSet, level_hash: Optional[str] = None) -> str:
    values: Dict[str, str] = {
        DLC_NAME_LOWER: names.package_name_lower,
        DLC_NAME_UPPER: names.package_name_upper,
        MAPPING_BASE_NAME_LOWER: names.slug_lower,
        MAPPING_BASE_NAME_UPPER: names.slug_upper,
        LEVEL_NAME_HASH: level_hash if level_hash is not None else names.level_hash,
    }
    return CONTENT_TEMPLATE.render(values)


def render_setup_manifest(names: NameSet, timestamp: Optional[datetime] = None) -> str:
    ts = timestamp if timestamp is not None else datetime.now()
    values: Dict[str, str] = {
        DLC_NAME_UPPER: names.package_name_upper,
        MAPPING_BASE_NAME_LOWER: names.slug_lower,
        MAPPING_BASE_NAME_UPPER: names.slug_upper,
        TIMESTAMP_PLACEHOLDER: format_timestamp(ts),
    }
    return SETUP_TEMPLATE.render(values)


def write_manifest(text: str, manifest_path: str) -> str:
    path = Path(manifest_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return str(path)
