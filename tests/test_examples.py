"""Examples of ``@testx`` tests, collected and run by pytest itself."""

from types import SimpleNamespace

import pytest

from testx import no_setup, testx


def setup():
    return 4711


def setup_666():
    return 666


def setup_pair():
    return (4711, "foo")


fixtures = SimpleNamespace(answer=lambda: 42)


@testx
def test_sample():
    assert 1 == 1


@testx
def test_sample_one_arg(num):
    assert num == 4711


@testx(setup=setup_pair)
def test_sample_tuple(data):
    num, text = data

    assert num == 4711
    assert text == "foo"


@testx(setup="setup_666")
def test_sample_custom_str(num):
    assert num == 666


@testx(setup=setup_666)
def test_sample_custom_path(num):
    assert num == 666


@testx(setup=fixtures.answer)
def test_sample_qualified_path(num):
    assert num == 42


@testx(no_setup)
def test_sample_no_setup():
    assert True


@testx
@pytest.mark.xfail(reason="the setup value is 4711", strict=True)
def test_sample_keeps_markers(num):
    assert num == 0
