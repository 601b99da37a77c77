"""
utils.py

Project: Numpy-SCAE
Author: Gabriel Souza
Description: Run directory allocation for checkpoints and logs. Every training run gets a new,
             sequentially numbered folder.
Published: 10-19-2026
"""

import os

def get_new_run_dir(model_type="scae", base_dir="model_ckpt/"):
    """
    Create the next numbered run directory under base_dir/model_type.

    Args:
        model_type (str): Subdirectory grouping the runs (e.g. 'scae' or 'ffcnn').
        base_dir (str): Root of all run directories.

    Returns:
        str: Path of the new directory, e.g. 'model_ckpt/scae/002'.
    """
    run_base_dir = os.path.join(base_dir, model_type)
    os.makedirs(run_base_dir, exist_ok=True)

    existing = [d for d in os.listdir(run_base_dir) if d.isdigit()]
    new_run = f"{max(int(d) for d in existing) + 1:03d}" if existing else "001"

    new_dir = os.path.join(run_base_dir, new_run)
    os.makedirs(new_dir, exist_ok=False)
    return new_dir
