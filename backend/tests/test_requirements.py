"""
Checks that the runtime stack is installed and the package layout is intact.
"""

import importlib
import sys
from pathlib import Path

import pytest

PACKAGE_DIR = Path(__file__).parent.parent / "mindcoach"


def test_python_version():
    assert sys.version_info[:2] >= (3, 11)


@pytest.mark.parametrize("module, attribute", [
    ("fastapi", "FastAPI"),
    ("uvicorn", "run"),
    ("sqlalchemy.ext.asyncio", "create_async_engine"),
    ("aiomysql", "connect"),
    ("langchain_core.messages", "AIMessage"),
    ("langchain_openai", "ChatOpenAI"),
    ("langgraph.graph", "StateGraph"),
    ("jose.jwt", "encode"),
    ("pydantic_settings", "BaseSettings"),
    ("httpx", "AsyncClient"),
])
def test_dependency_available(module, attribute):
    assert hasattr(importlib.import_module(module), attribute)


def test_pydantic_v2():
    import pydantic
    assert pydantic.VERSION.startswith("2")


@pytest.mark.parametrize("subdir", [
    "agents/coach",
    "agents/generator",
    "agents/judge",
    "agents/reflection",
    "api",
    "db",
    "session",
    "streaming",
])
def test_package_layout(subdir):
    assert (PACKAGE_DIR / subdir / "__init__.py").exists()


@pytest.mark.parametrize("module", [
    "mindcoach.main",
    "mindcoach.client",
    "mindcoach.session.orchestrator",
    "mindcoach.streaming",
])
def test_modules_import(module):
    assert importlib.import_module(module) is not None
