import os

import numpy as np
import pytest
from PIL import Image

from common_utils.patch_dataset import (load_images, load_ground_truth, channel_statistics, standardize,
                                        image_to_block, random_centres, sample_patches)
from common_utils.utils import get_new_run_dir


def test_npy_stack_gets_a_channel_axis_and_unit_range(tmp_path):
    path = str(tmp_path / "images.npy")
    np.save(path, np.full((2, 4, 3), 255, dtype=np.uint8))
    images = load_images(path)
    assert images.shape == (2, 4, 3, 1)
    assert images.dtype == np.float32
    np.testing.assert_allclose(images, 1.)


def test_image_folder_is_read_as_width_height_channels(tmp_path):
    for name in ("b.png", "a.png"):
        Image.fromarray(np.zeros((3, 5), dtype=np.uint8)).save(str(tmp_path / name))
    (tmp_path / "notes.txt").write_text("not an image")
    images = load_images(str(tmp_path))
    assert images.shape == (2, 5, 3, 1)


def test_missing_files_raise(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_images(str(tmp_path / "nothing.npy"))
    with pytest.raises(FileNotFoundError):
        load_ground_truth(str(tmp_path / "nothing.npz"))


def test_ground_truth_labels_must_match_the_images(tmp_path):
    path = str(tmp_path / "gt.npz")
    np.savez(path, images=np.zeros((2, 4, 4)), labels=np.zeros((2, 4, 3)))
    with pytest.raises(ValueError):
        load_ground_truth(path)


def test_standardized_channels_have_zero_mean():
    images = np.random.uniform(0, 5, size=(3, 4, 4, 2)).astype(np.float32)
    images[..., 1] = 2.
    mean, std = channel_statistics(images)
    assert std[1] == 1
    normalized = standardize(images, mean, std)
    np.testing.assert_allclose(normalized.mean(axis=(0, 1, 2)), 0., atol=1e-5)
    assert image_to_block(normalized[0]).shape == (4, 4, 2)


def test_centred_patches_fit_in_the_image():
    for cx, cy in random_centres(6, 5, 3, 4, 200):
        assert 0 <= cx - 1 and cx - 1 + 3 <= 6
        assert 0 <= cy - 2 and cy - 2 + 4 <= 5
    with pytest.raises(ValueError):
        random_centres(2, 5, 3, 3, 1)


def test_sampled_patches_carry_the_centre_label():
    labels = np.arange(2 * 4 * 4).reshape(2, 4, 4)
    blocks = [image_to_block(np.zeros((4, 4, 1))) for _ in range(2)]
    samples = list(sample_patches(blocks, 2, 2, 10, labels))
    assert len(samples) == 10
    for block, cx, cy, label in samples:
        n = blocks.index(block)
        assert label == labels[n, cx, cy]


def test_run_directories_are_numbered(tmp_path):
    first = get_new_run_dir("scae", str(tmp_path))
    second = get_new_run_dir("scae", str(tmp_path))
    assert os.path.basename(first) == "001"
    assert os.path.basename(second) == "002"
