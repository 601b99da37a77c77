"""
patch_dataset.py

Project: Numpy-SCAE
Author: Gabriel Souza
Description: Utilities feeding image patches to the SCAE and FFCNN training scripts. Loads image stacks
             (.npy) and labelled ground truth (.npz with 'images' and per-pixel 'labels'), normalizes
             them per channel, wraps images into DataBlocks and samples random patch centres.
Published: 10-19-2026
"""

import os

import numpy as np
from PIL import Image

from numpy_scae.utils import backend
from numpy_scae.utils.data_block import DataBlock

def _as_image_stack(images):
    images = np.asarray(images)
    if images.ndim == 3:
        # grayscale stack, add the channel axis
        images = images[..., None]
    if images.ndim != 4:
        raise ValueError(f"expected an (N, width, height[, channels]) stack, got shape {images.shape}")
    if images.dtype == np.uint8:
        return images.astype(np.float32) / np.float32(255.0)
    return images.astype(np.float32)

def load_image_folder(path):
    """
    Read every image of a directory with PIL, sorted by file name. Images must share one size.

    Returns:
        ndarray: uint8 host array of shape (N, width, height, channels).
    """
    files = sorted(f for f in os.listdir(path) if f.lower().endswith((".png", ".jpg", ".jpeg", ".bmp", ".tif")))
    if len(files) == 0:
        raise ValueError(f"No images found in directory: {path}")
    images = []
    for name in files:
        with Image.open(os.path.join(path, name)) as image:
            # PIL arrays are (height, width[, channels])
            images.append(np.asarray(image.convert("RGB") if image.mode not in ("L", "RGB") else image).swapaxes(0, 1))
    return np.stack(images)

def load_images(path):
    """
    Load an image stack.

    Args:
        path (str): .npy file with an (N, width, height[, channels]) array, or a directory of
            images read with PIL; uint8 data is scaled to [0, 1].

    Returns:
        backend.np.ndarray: Float32 array of shape (N, width, height, channels).
    """
    if os.path.isdir(path):
        return backend.from_numpy(_as_image_stack(load_image_folder(path)))
    if not os.path.isfile(path):
        raise FileNotFoundError(f"No image stack at {path}")
    return backend.from_numpy(_as_image_stack(np.load(path)))

def load_ground_truth(path):
    """
    Load labelled images.

    Args:
        path (str): .npz file with 'images' (N, width, height[, channels]) and integer
            'labels' (N, width, height), one class per pixel.

    Returns:
        (images, labels): Backend arrays.
    """
    if not os.path.isfile(path):
        raise FileNotFoundError(f"No ground truth at {path}")
    with np.load(path) as data:
        images = _as_image_stack(data["images"])
        labels = np.asarray(data["labels"], dtype=np.int64)
    if labels.shape != images.shape[:3]:
        raise ValueError(f"labels of shape {labels.shape} do not match images of shape {images.shape}")
    return backend.from_numpy(images), backend.from_numpy(labels)

def channel_statistics(images):
    """Per-channel mean and standard deviation of an (N, W, H, C) stack."""
    mean = images.mean(axis=(0, 1, 2))
    std = images.std(axis=(0, 1, 2))
    std[std == 0] = 1
    return mean, std

def standardize(images, mean, std):
    return (images - mean.reshape(1, 1, 1, -1)) / std.reshape(1, 1, 1, -1)

def image_to_block(image):
    """Wrap one (W, H, C) image into a DataBlock."""
    return DataBlock.from_array(image)

def random_centres(width, height, patch_width, patch_height, count):
    """
    Draw patch centres such that a patch centred with `cx - patch_width // 2` fits in the image.

    Returns:
        list: (cx, cy) pairs.
    """
    if patch_width > width or patch_height > height:
        raise ValueError(f"a {patch_width}x{patch_height} patch does not fit in a {width}x{height} image")
    low_x, low_y = patch_width // 2, patch_height // 2
    xs = np.random.randint(low_x, width - patch_width + low_x + 1, size=count)
    ys = np.random.randint(low_y, height - patch_height + low_y + 1, size=count)
    return list(zip(xs.tolist(), ys.tolist()))

def sample_patches(blocks, patch_width, patch_height, count, labels=None):
    """
    Yield random training positions over a list of image blocks.

    Args:
        blocks (list): DataBlocks, one per image.
        patch_width, patch_height (int): Input patch size of the model.
        count (int): Number of positions to draw.
        labels (ndarray): Optional (N, W, H) per-pixel labels.

    Yields:
        (block, cx, cy, label): label is None without ground truth.
    """
    picks = np.random.randint(0, len(blocks), size=count)
    for n in picks.tolist():
        block = blocks[n]
        (cx, cy), = random_centres(block.width, block.height, patch_width, patch_height, 1)
        label = None if labels is None else int(labels[n, cx, cy])
        yield block, cx, cy, label
