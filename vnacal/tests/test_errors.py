import logging

import pytest

from vnacal.errors import (ErrorKind, InternalError, MathError, ResourceError,
                           UsageError, VNACalError, report_error)


@pytest.mark.parametrize('kind, exception, builtin', [
    (ErrorKind.USAGE, UsageError, ValueError),
    (ErrorKind.MATH, MathError, ArithmeticError),
    (ErrorKind.SYSTEM, ResourceError, MemoryError),
    (ErrorKind.INTERNAL, InternalError, RuntimeError),
])
def test_report_error_raises_matching_exception(kind, exception, builtin):
    with pytest.raises(exception) as info:
        report_error(kind, 'f: broken')
    assert isinstance(info.value, builtin)
    assert isinstance(info.value, VNACalError)
    assert info.value.kind is kind
    assert info.value.message == 'f: broken'
    assert str(info.value) == 'f: broken'


def test_report_error_calls_error_fn_and_logs(caplog):
    calls = []

    def error_fn(message, kind):
        calls.append((message, kind))

    with caplog.at_level(logging.ERROR, logger='vnacal.errors'):
        with pytest.raises(UsageError):
            report_error(ErrorKind.USAGE, 'f: bad argument', error_fn)
    assert calls == [('f: bad argument', ErrorKind.USAGE)]
    assert 'f: bad argument' in caplog.text


def test_kind_str():
    assert str(ErrorKind.MATH) == 'math'
