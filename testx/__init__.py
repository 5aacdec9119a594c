"""Test functions with an optional setup step.

Mark a test with ``@testx``. When the test takes an argument, the setup
function (``setup`` by default) is called first and its result is passed in::

    from testx import testx

    def setup():
        return 4711

    @testx
    def test_sample(num):
        assert num == 4711

Use ``@testx(setup="name")`` or ``@testx(setup=name)`` to pick another setup
function and ``@testx(no_setup)`` to skip it. A test without arguments never
calls a setup function.
"""

from testx.runtime import entry_point, no_setup, testx

__version__ = "0.1.0"

__all__ = ["entry_point", "no_setup", "testx", "__version__"]
