import numpy as np
import pytest

from numpy_scae.utils import backend
from numpy_scae.utils.data_block import DataBlock


@pytest.fixture(autouse=True)
def cpu_backend():
    backend.set_backend("cpu")
    backend.seed(1234)
    yield


@pytest.fixture
def random_block():
    def make(width, height, depth, low=-1., high=1.):
        return DataBlock.from_array(np.random.uniform(low, high, size=(width, height, depth)))
    return make
