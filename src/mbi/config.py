"""
Static survey configuration.

The defaults reproduce the deployed survey: five sections of six comparisons,
eight mainstream outlets for the mixed section, and the form endpoint with its
entry-id mapping. A YAML file may override any subset of keys.

Example YAML:

    comparisons_per_section: 4
    mainstream_outlets: [tg1, corriere]
    sections:
      - {id: 1, type: tg, name: Telegiornali}
      - {id: 2, type: mixed, name: Confronti misti}
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Tuple

import yaml

from mbi.model import Section, SectionType


class ConfigError(Exception):
    """Raised when a configuration document is invalid."""
    pass


DEFAULT_FORM_URL = (
    "https://docs.google.com/forms/d/e/"
    "1FAIpQLScjVf0SQ_BpNd0t0LnKktkcJSQBeqLRQRCaqDg5CzJxeE_Qug/formResponse"
)

DEFAULT_FORM_FIELDS: Dict[str, str] = {
    "respondent_id": "entry.1734835485",
    "timestamp": "entry.1274077527",
    "interview_id": "entry.1066898704",
    "comparison_id": "entry.109375964",
    "outlet_left_codename": "entry.645477966",
    "outlet_right_codename": "entry.604728793",
    "chosen_outlet_codename": "entry.1931735630",
    "section_type": "entry.103511959",
    "email": "entry.1012204936",
}

DEFAULT_SECTIONS: Tuple[Section, ...] = (
    Section(id=1, type=SectionType.TG, name="Telegiornali"),
    Section(id=2, type=SectionType.TALK, name="Talk show televisivi"),
    Section(id=3, type=SectionType.PRESS, name="Quotidiani e testate online"),
    Section(id=4, type=SectionType.RADIO, name="Programmi radiofonici"),
    Section(id=5, type=SectionType.MIXED, name="Confronti misti"),
)

DEFAULT_MAINSTREAM_OUTLETS: FrozenSet[str] = frozenset({
    "tg1", "tg5", "tgla7", "corriere", "repubblica",
    "portaaporta", "ottoemezzo", "radio24",
})


@dataclass(frozen=True)
class SurveyConfig:
    """
    Everything the survey needs that is fixed before a respondent arrives.

    Properties:
        sections: Ordered section descriptors
        comparisons_per_section: N, comparisons generated per section
        mainstream_outlets: Codenames eligible as the anchor of mixed pairs
        form_url: Submission endpoint
        form_fields: Response field name -> form entry id
        catalog_path: Location of the outlet catalog file
        submit_timeout: Seconds before a submission attempt is abandoned
    """

    sections: Tuple[Section, ...] = DEFAULT_SECTIONS
    comparisons_per_section: int = 6
    mainstream_outlets: FrozenSet[str] = DEFAULT_MAINSTREAM_OUTLETS
    form_url: str = DEFAULT_FORM_URL
    form_fields: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_FORM_FIELDS))
    catalog_path: str = "data/outlets.csv"
    submit_timeout: float = 10.0

    @property
    def section_ids(self) -> Tuple[int, ...]:
        return tuple(section.id for section in self.sections)

    @property
    def total_comparisons(self) -> int:
        return len(self.sections) * self.comparisons_per_section


def _section_from_dict(d: Dict[str, Any]) -> Section:
    try:
        return Section(id=int(d["id"]), type=SectionType(d["type"]), name=str(d.get("name", "")))
    except (KeyError, ValueError, TypeError) as e:
        raise ConfigError(f"Invalid section {d!r}: {e}")


def config_from_dict(d: Dict[str, Any]) -> SurveyConfig:
    """Build a SurveyConfig, falling back to defaults for missing keys."""
    defaults = SurveyConfig()

    sections = defaults.sections
    if "sections" in d:
        sections = tuple(_section_from_dict(s) for s in d["sections"] or [])
        if not sections:
            raise ConfigError("At least one section is required")
        ids = [s.id for s in sections]
        if len(ids) != len(set(ids)):
            raise ConfigError(f"Duplicate section ids: {ids}")

    try:
        comparisons = int(d.get("comparisons_per_section", defaults.comparisons_per_section))
        timeout = float(d.get("submit_timeout", defaults.submit_timeout))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid numeric setting: {e}")
    if comparisons < 1:
        raise ConfigError(f"comparisons_per_section must be >= 1, got {comparisons}")

    form_fields = dict(DEFAULT_FORM_FIELDS)
    form_fields.update(d.get("form_fields") or {})
    missing = sorted(set(DEFAULT_FORM_FIELDS) - set(form_fields))
    if missing:
        raise ConfigError(f"Missing form fields: {missing}")

    mainstream = d.get("mainstream_outlets")
    return SurveyConfig(
        sections=sections,
        comparisons_per_section=comparisons,
        mainstream_outlets=frozenset(mainstream) if mainstream is not None else defaults.mainstream_outlets,
        form_url=d.get("form_url", defaults.form_url),
        form_fields=form_fields,
        catalog_path=d.get("catalog_path", defaults.catalog_path),
        submit_timeout=timeout,
    )


def config_to_dict(config: SurveyConfig) -> Dict[str, Any]:
    return {
        "sections": [{"id": s.id, "type": s.type.value, "name": s.name} for s in config.sections],
        "comparisons_per_section": config.comparisons_per_section,
        "mainstream_outlets": sorted(config.mainstream_outlets),
        "form_url": config.form_url,
        "form_fields": dict(config.form_fields),
        "catalog_path": config.catalog_path,
        "submit_timeout": config.submit_timeout,
    }


def config_from_yaml(s: str) -> SurveyConfig:
    try:
        d = yaml.safe_load(s)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML configuration: {e}")
    if d is None:
        return SurveyConfig()
    if not isinstance(d, dict):
        raise ConfigError("Configuration must be a mapping")
    return config_from_dict(d)


def load_config(filepath: str) -> SurveyConfig:
    """
    Load a SurveyConfig from a YAML file.

    Raises:
        FileNotFoundError: If file doesn't exist
        ConfigError: If the document is invalid
    """
    with open(filepath, "r", encoding="utf-8") as f:
        return config_from_yaml(f.read())


__all__: List[str] = [
    "ConfigError",
    "SurveyConfig",
    "config_from_dict",
    "config_to_dict",
    "config_from_yaml",
    "load_config",
]
