"""
Work size bookkeeping for kernel launches.
"""

from math import gcd

from clkernel.helpers import normalize_vector, product


class DispatchGeometry:
    """
    Holds the thread block (work group) size, the grid size and the global offset
    of a kernel launch, each as a tuple of 3 integers.
    The global size is derived as ``grid_size * thread_block_size`` (component-wise),
    so it is always a multiple of the thread block size.
    Assigning to ``global_size`` changes the grid size, reducing the thread block size
    in each assigned dimension to ``gcd(thread_block_size, global_size)`` first.

    .. note::

        No device limits are checked here;
        they are enforced by :py:class:`~clkernel.Kernel` at call time,
        since the device can be changed after the geometry is set.
    """

    def __init__(self, thread_block_size=1, grid_size=1, global_offset=0):
        self.thread_block_size = thread_block_size
        self.grid_size = grid_size
        self.global_offset = global_offset

    @property
    def thread_block_size(self):
        return self._thread_block_size

    @thread_block_size.setter
    def thread_block_size(self, value):
        value = normalize_vector(value, 1)
        if any(l < 0 for l in value):
            raise ValueError("Thread block size must be non-negative, got " + str(value))
        self._thread_block_size = value

    @property
    def grid_size(self):
        return self._grid_size

    @grid_size.setter
    def grid_size(self, value):
        value = normalize_vector(value, 1)
        if any(l <= 0 for l in value):
            raise ValueError("Grid size must be positive, got " + str(value))
        self._grid_size = value

    @property
    def global_offset(self):
        return self._global_offset

    @global_offset.setter
    def global_offset(self, value):
        value = normalize_vector(value, 0)
        if any(l < 0 for l in value):
            raise ValueError("Global offset must be non-negative, got " + str(value))
        self._global_offset = value

    @property
    def global_size(self):
        return tuple(g * t for g, t in zip(self._grid_size, self._thread_block_size))

    @global_size.setter
    def global_size(self, value):
        # The thread block size is reduced to gcd(thread_block_size, value)
        # to keep it compatible; missing trailing dimensions are left untouched.
        value = normalize_vector(value, None)
        dims = [i for i, l in enumerate(value) if l is not None]
        if any(value[i] <= 0 for i in dims):
            raise ValueError("Global size must be positive, got " + str(value))

        thread_block_size = list(self._thread_block_size)
        grid_size = list(self._grid_size)
        for i in dims:
            thread_block_size[i] = gcd(thread_block_size[i], value[i])
            grid_size[i] = value[i] // thread_block_size[i]

        self._thread_block_size = tuple(thread_block_size)
        self._grid_size = tuple(grid_size)

    @property
    def num_threads_per_block(self):
        return product(self._thread_block_size)

    def launch_vectors(self):
        """
        Returns a pair of the 6-integer vector (global offset followed by global size)
        and the 3-integer thread block size vector, as expected by the backend.
        """
        return self._global_offset + self.global_size, self._thread_block_size

    def copy(self):
        return DispatchGeometry(
            thread_block_size=self._thread_block_size,
            grid_size=self._grid_size,
            global_offset=self._global_offset)

    def __eq__(self, other):
        return (
            isinstance(other, DispatchGeometry)
            and self._thread_block_size == other._thread_block_size
            and self._grid_size == other._grid_size
            and self._global_offset == other._global_offset)

    def __repr__(self):
        return (
            "DispatchGeometry(thread_block_size={tbs}, grid_size={gs}, "
            "global_offset={go})").format(
            tbs=self._thread_block_size, gs=self._grid_size, go=self._global_offset)
