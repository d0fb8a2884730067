from typing import Callable

import numpy as npy
import pytest

from vnacal.calibration import NewCalibration, ParameterCollection

NPTS = 3


@pytest.fixture()
def frequency() -> npy.ndarray:
    return npy.linspace(1e9, 3e9, NPTS)


@pytest.fixture()
def parameters() -> ParameterCollection:
    return ParameterCollection()


@pytest.fixture()
def random_m() -> Callable[..., npy.ndarray]:
    rng = npy.random.default_rng(0)

    def make(rows: int, columns: int, npts: int = NPTS) -> npy.ndarray:
        shape = (npts, rows, columns)
        return rng.standard_normal(shape) + 1j * rng.standard_normal(shape)
    return make


@pytest.fixture()
def t8(parameters: ParameterCollection, frequency: npy.ndarray) -> NewCalibration:
    cal = NewCalibration('T8', 2, 2, NPTS, parameters=parameters)
    cal.set_frequency_vector(frequency)
    return cal
