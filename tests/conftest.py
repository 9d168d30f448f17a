"""
Pytest configuration and shared fixtures for mbi tests.
"""

from unittest.mock import MagicMock

import pytest

from mbi.catalog import parse_catalog_string
from mbi.config import SurveyConfig
from mbi.model import Section, SectionType
from mbi.persistence import MemoryStore
from mbi.randomness import RandomSource
from mbi.submission import FormSubmitter

MAINSTREAM = frozenset({"tg1", "tg5", "corriere", "radio24"})

CATALOG_CSV = """codename,name,type,pic
tg1,TG1,tg,https://example.org/tg1.png
tg2,TG2,tg,
tg3,TG3,tg,
tg5,TG5,tg,
skytg24,Sky TG24,tg,
portaaporta,Porta a Porta,talk,
ottoemezzo,Otto e mezzo,talk,
report,Report,talk,
corriere,Corriere della Sera,press,
repubblica,la Repubblica,press,
giornale,il Giornale,press,
radio24,Radio 24,radio,
radiopopolare,Radio Popolare,radio,
"""


@pytest.fixture
def mainstream():
    return MAINSTREAM


@pytest.fixture
def catalog_csv():
    return CATALOG_CSV


@pytest.fixture
def rng():
    return RandomSource(seed=42)


@pytest.fixture
def catalog():
    return parse_catalog_string(CATALOG_CSV, MAINSTREAM)


@pytest.fixture
def config():
    return SurveyConfig(mainstream_outlets=MAINSTREAM)


@pytest.fixture
def small_sections():
    return (
        Section(id=1, type=SectionType.TG, name="Telegiornali"),
        Section(id=2, type=SectionType.RADIO, name="Radio"),
        Section(id=3, type=SectionType.MIXED, name="Misti"),
    )


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def http_session():
    """Mock requests.Session recording every post()."""
    return MagicMock()


@pytest.fixture
def submitter(config, http_session):
    sink = FormSubmitter(
        config.form_url,
        config.form_fields,
        session=http_session,
        clock=lambda: "2026-01-01T00:00:00.000Z",
    )
    yield sink
    sink.close()
