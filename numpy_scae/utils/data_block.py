"""
data_block.py

Project: Numpy-SCAE
Author: Gabriel Souza
Description: DataBlock, the (width x height x depth) float buffer shared between units and
             layers. Each (x, y) cell carries an accumulation weight so that overlapping
             patches can be pasted and averaged afterwards with normalize_weights().
Published: 10-19-2026
"""

from numpy_scae.utils import backend

class DataBlock:
    """
    Three dimensional tensor buffer with per-cell accumulation weights.

    Values are stored as values[x, y, z]. Flattened patches always use the (x, y, channel)
    ordering with the channel index running fastest; encoder and decoder weight matrices
    are indexed assuming exactly this layout.

    Attributes:
        values (ndarray): Float32 array of shape (width, height, depth).
        weights (ndarray): Float32 array of shape (width, height), 0 until something is pasted.
    """
    def __init__(self, width, height, depth):
        """
        Allocate a zero-filled block.

        Args:
            width (int): Number of columns.
            height (int): Number of rows.
            depth (int): Number of channels per cell.
        """
        assert width > 0 and height > 0 and depth > 0, f"invalid DataBlock size {width}x{height}x{depth}"
        self.values = backend.np.zeros((width, height, depth), dtype=backend.np.float32)
        self.weights = backend.np.zeros((width, height), dtype=backend.np.float32)

    @property
    def width(self):
        return self.values.shape[0]

    @property
    def height(self):
        return self.values.shape[1]

    @property
    def depth(self):
        return self.values.shape[2]

    @property
    def shape(self):
        return self.values.shape

    # Coordinate contract checks; negative indices would otherwise wrap silently
    def _check_cell(self, x, y):
        assert 0 <= x < self.width and 0 <= y < self.height, \
            f"cell ({x}, {y}) outside of {self.width}x{self.height} block"

    def _check_patch(self, x, y, w, h):
        assert x >= 0 and y >= 0 and w > 0 and h > 0 and x + w <= self.width and y + h <= self.height, \
            f"patch ({x}, {y}, {w}x{h}) outside of {self.width}x{self.height} block"

    def get_value(self, z, x, y):
        self._check_cell(x, y)
        return float(self.values[x, y, z])

    def set_value(self, z, x, y, value):
        self._check_cell(x, y)
        self.values[x, y, z] = value

    def add_value(self, z, x, y, value):
        """Add value to one channel of a cell and count it in that cell's weight."""
        self._check_cell(x, y)
        self.values[x, y, z] += value
        self.weights[x, y] += 1

    def get_values(self, x, y):
        """
        Return the channel vector of a cell by reference.

        Returns:
            ndarray: View of shape (depth,); writes go straight into the block.
        """
        self._check_cell(x, y)
        return self.values[x, y]

    def get_weight(self, x, y):
        self._check_cell(x, y)
        return float(self.weights[x, y])

    def set_weight(self, x, y, weight):
        self._check_cell(x, y)
        self.weights[x, y] = weight

    def patch_to_array(self, x, y, w, h, out=None):
        """
        Flatten a rectangular region into a vector.

        Args:
            x, y (int): Top-left corner of the patch.
            w, h (int): Patch width and height.
            out (ndarray): Optional destination of length w*h*depth.

        Returns:
            ndarray: Flattened patch, (x, y, channel) ordering.
        """
        self._check_patch(x, y, w, h)
        patch = self.values[x:x + w, y:y + h, :].reshape(-1)
        if out is None:
            return patch.copy()
        out[:] = patch
        return out

    def weighted_patch_to_array(self, x, y, w, h):
        """Like patch_to_array but every cell with weight > 1 is divided by its weight."""
        self._check_patch(x, y, w, h)
        weights = self.weights[x:x + w, y:y + h].copy()
        weights[weights <= 1] = 1
        return (self.values[x:x + w, y:y + h, :] / weights[:, :, None]).reshape(-1)

    def array_to_patch(self, array, x, y, w, h):
        """Overwrite a region with a flattened vector and count one write per cell."""
        self._check_patch(x, y, w, h)
        self.values[x:x + w, y:y + h, :] = backend.np.reshape(array, (w, h, self.depth))
        self.weights[x:x + w, y:y + h] += 1

    def weighted_paste(self, vector, x, y):
        """
        Add a channel vector into one cell and increment its weight.

        Args:
            vector (ndarray): Vector of length depth.
            x, y (int): Target cell.
        """
        self._check_cell(x, y)
        self.values[x, y, :] += vector
        self.weights[x, y] += 1

    def weighted_patch_paste(self, array, x, y, w, h):
        """
        Add a flattened patch into a region, incrementing the weight of every cell it covers.

        Overlapping pastes accumulate; normalize_weights() turns the sums into averages.
        """
        self._check_patch(x, y, w, h)
        self.values[x:x + w, y:y + h, :] += backend.np.reshape(array, (w, h, self.depth))
        self.weights[x:x + w, y:y + h] += 1

    def normalize_weights(self):
        """
        Divide every accumulated cell by its weight and reset the weight to 1.

        Cells with weight 0 (untouched) or 1 (already normalized) are left as they are.
        """
        mask = (self.weights != 0) & (self.weights != 1)
        if backend.np.any(mask):
            self.values[mask] /= self.weights[mask][:, None]
            self.weights[mask] = 1

    def normalize(self):
        """Linearly rescale all values into [-1, 1]."""
        low = self.values.min()
        high = self.values.max()
        if high == low:
            self.values[...] = 0
            return
        self.values[...] = 2 * (self.values - low) / (high - low) - 1

    def clear(self):
        """Zero values and weights."""
        self.values.fill(0)
        self.weights.fill(0)

    def copy_to(self, other):
        """Copy values and weights into another block of identical shape."""
        if other.shape != self.shape:
            raise ValueError(f"cannot copy a {self.shape} block into a {other.shape} block")
        other.values[...] = self.values
        other.weights[...] = self.weights

    def clone(self):
        twin = DataBlock(self.width, self.height, self.depth)
        self.copy_to(twin)
        return twin

    @classmethod
    def from_array(cls, array):
        """Build a block from a (width, height, depth) array."""
        block = cls(*array.shape)
        block.values[...] = backend.np.asarray(array, dtype=backend.np.float32)
        return block

    def __repr__(self):
        return f"DataBlock({self.width}x{self.height}x{self.depth})"
