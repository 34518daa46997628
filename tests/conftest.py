import ast
import inspect
import textwrap
from collections.abc import Iterator

import pytest

from resume_chat.agents.assisted_graph import reset_assisted_turn_graph
from resume_chat.providers import factory
from resume_chat.providers.llm.base import TaskType
from resume_chat.providers.llm.mock_adapter import MockLLMProvider

# A model reply that answers the user and extracts one field.
DEFAULT_TURN_REPLY = (
    "Nice to meet you, Maria! What's your email address?\n"
    "<extracted_data>\n"
    '{"fields": [{"path": "personalInfo.fullName", "value": "Maria Garcia", '
    '"confidence": 0.95}], "suggestedSection": null, "followUpNeeded": false, '
    '"specialContent": null, "isComplete": false}\n'
    "</extracted_data>"
)


@pytest.fixture
def mock_llm() -> Iterator[MockLLMProvider]:
    """Fixture that provides mock LLM and resets after test.

    Injects a MockLLMProvider with a canned conversation turn into the
    factory singleton and resets the factory afterwards.

    Yields:
        MockLLMProvider instance with pre-configured responses.
    """
    mock = MockLLMProvider({TaskType.CONVERSATION_TURN: DEFAULT_TURN_REPLY})

    # Inject mock into factory singleton
    factory._llm_provider = mock

    yield mock

    # Reset after test
    factory.reset_providers()


@pytest.fixture(autouse=True)
def reset_graph_singleton() -> Iterator[None]:
    """Compile a fresh assisted turn graph for every test."""
    reset_assisted_turn_graph()
    yield
    reset_assisted_turn_graph()


# =============================================================================
# Test Antipattern Detection (warning-only)
# =============================================================================

_BANNED_FUNCTIONS = frozenset({"isinstance", "issubclass", "hasattr"})


def _find_antipatterns_in_source(source: str) -> list[str]:
    """Scan test function source for banned structural assertion patterns."""
    try:
        tree = ast.parse(textwrap.dedent(source))
    except SyntaxError:
        return []

    return [
        node.func.id
        for node in ast.walk(tree)
        if isinstance(node, ast.Call)
        and isinstance(node.func, ast.Name)
        and node.func.id in _BANNED_FUNCTIONS
    ]


_antipattern_warnings: list[str] = []


def pytest_runtest_teardown(item: pytest.Item) -> None:
    """Check each test for antipattern usage after it runs."""
    if not hasattr(item, "obj") or not callable(item.obj):
        return
    try:
        source = inspect.getsource(item.obj)
    except (OSError, TypeError):
        return

    patterns = _find_antipatterns_in_source(source)
    if patterns:
        _antipattern_warnings.append(f"  {item.nodeid}: {', '.join(patterns)}")


def pytest_terminal_summary(
    terminalreporter: pytest.TerminalReporter,
) -> None:
    """Report test antipatterns at the end of the test session (warning only)."""
    if _antipattern_warnings:
        terminalreporter.section("test antipattern warnings")
        terminalreporter.line(
            "The following tests assert on structure instead of behavior."
        )
        terminalreporter.line("")
        for w in _antipattern_warnings:
            terminalreporter.line(w)
        _antipattern_warnings.clear()
