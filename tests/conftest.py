"""
Pytest configuration and shared fixtures.
"""

import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

# Import nsrules modules
from nsrules.parser import parse_namespace
from nsrules.rules import compile_policy


# =============================================================================
# PATH FIXTURES
# =============================================================================

@pytest.fixture
def fixtures_dir():
    """Path to test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def shipping_dir(fixtures_dir):
    """Path to the shipping sample project (one violation, several bad files)."""
    return fixtures_dir / "shipping"


@pytest.fixture
def clean_dir(fixtures_dir):
    """Path to a sample project with no violations."""
    return fixtures_dir / "clean"


# =============================================================================
# POLICY FIXTURES
# =============================================================================

SHIPPING_RULES = [
    ("shipping.entity.*", {"restrict-to": ["shipping.entity.*"]}),
    ("shipping.service.*", {"restrict-to": ["shipping.entity.*"]}),
    ("shipping.use-case.*", {"restrict-to": ["shipping.entity.*", "shipping.service.*"]}),
]


@pytest.fixture
def shipping_policy():
    """Compiled layering rules for the shipping domain."""
    return compile_policy(SHIPPING_RULES)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def ns_source(name: str, *requires: str) -> str:
    """Build the text of a file declaring name and requiring each of requires."""
    if not requires:
        return f"(ns {name})\n"
    libspecs = "\n            ".join(f"[{r}]" for r in requires)
    return f"(ns {name}\n  (:require {libspecs}))\n"


def reference_targets(text: str) -> list:
    """Targets referenced by the ns form in text, in source order."""
    _, references = parse_namespace(text)
    return [r.target for r in references]
