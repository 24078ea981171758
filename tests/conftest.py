import textwrap

import pytest

import vmasm


@pytest.fixture
def source():
    """turn an indented source block into the list of lines the assembler reads."""
    def _source(text):
        return textwrap.dedent(text).lstrip("\n").splitlines(keepends=True)
    return _source


@pytest.fixture
def asm(source):
    def _asm(text):
        return vmasm.assemble(source(text)).words
    return _asm


@pytest.fixture(autouse=True)
def reset_debug():
    yield
    vmasm.g_debug = False
