import itertools

import numpy as np
import pytest

from numpy_scae.utils.data_block import DataBlock


def test_patch_flattening_runs_channel_fastest():
    block = DataBlock(3, 2, 2)
    block.values[...] = np.arange(12).reshape(3, 2, 2)
    patch = block.patch_to_array(1, 0, 2, 2)
    # cells (1,0) (1,1) (2,0) (2,1), two channels each
    np.testing.assert_array_equal(patch, [4, 5, 6, 7, 8, 9, 10, 11])


def test_get_values_is_a_view():
    block = DataBlock(2, 2, 3)
    block.get_values(1, 0)[:] = 7
    assert block.get_value(2, 1, 0) == 7


def test_disjoint_pastes_are_kept_exactly_in_any_order():
    patches = {(0, 0): np.full(4, 0.25), (2, 0): np.full(4, -0.5), (0, 2): np.full(4, 1.5), (2, 2): np.full(4, 3.)}
    results = []
    for order in itertools.permutations(patches):
        block = DataBlock(4, 4, 1)
        for x, y in order:
            block.weighted_patch_paste(patches[(x, y)], x, y, 2, 2)
        block.normalize_weights()
        results.append(block.values.copy())
        np.testing.assert_array_equal(block.weights, np.ones((4, 4)))
    for values in results[1:]:
        np.testing.assert_array_equal(values, results[0])
    np.testing.assert_array_equal(results[0][2:4, 0:2, 0], np.full((2, 2), -0.5))


def test_overlapping_pastes_are_averaged():
    block = DataBlock(3, 3, 2)
    value = np.array([0.3, -1.2], dtype=np.float32)
    block.weighted_patch_paste(np.tile(value, 4), 0, 0, 2, 2)
    block.weighted_patch_paste(np.tile(value, 4), 1, 1, 2, 2)
    assert block.get_weight(1, 1) == 2
    block.normalize_weights()
    np.testing.assert_allclose(block.get_values(1, 1), value)
    assert block.get_weight(1, 1) == 1
    # untouched cells keep weight 0
    assert block.get_weight(2, 0) == 0


def test_array_to_patch_overwrites_a_region():
    block = DataBlock(3, 3, 2)
    block.values[...] = 9.
    block.array_to_patch(np.arange(8.), 1, 1, 2, 2)
    np.testing.assert_array_equal(block.patch_to_array(1, 1, 2, 2), np.arange(8.))
    assert block.get_value(0, 0, 0) == 9.
    assert block.get_weight(2, 2) == 1


def test_weighted_paste_and_patch_readback():
    block = DataBlock(2, 2, 1)
    block.weighted_paste(np.array([2.]), 0, 0)
    block.weighted_paste(np.array([4.]), 0, 0)
    np.testing.assert_allclose(block.weighted_patch_to_array(0, 0, 1, 1), [3.])


def test_normalize_rescales_to_unit_range():
    block = DataBlock.from_array(np.array([[[2.], [4.]], [[6.], [10.]]]))
    block.normalize()
    assert block.values.min() == -1 and block.values.max() == 1


def test_copy_to_requires_identical_shape():
    with pytest.raises(ValueError):
        DataBlock(2, 2, 1).copy_to(DataBlock(2, 3, 1))
    source = DataBlock.from_array(np.ones((2, 2, 1)))
    twin = source.clone()
    twin.set_value(0, 0, 0, 5.)
    assert source.get_value(0, 0, 0) == 1.


def test_out_of_range_access_is_a_contract_violation():
    block = DataBlock(2, 2, 1)
    with pytest.raises(AssertionError):
        block.get_value(0, -1, 0)
    with pytest.raises(AssertionError):
        block.patch_to_array(1, 1, 2, 2)
