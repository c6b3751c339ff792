"""
Enumeration and selection of OpenCL devices.
"""

import re

from clkernel.errors import InvalidDeviceIndex


# Bits of ``CL_DEVICE_TYPE``
DEVICE_TYPES = {
    'default': 1 << 0,
    'cpu': 1 << 1,
    'gpu': 1 << 2,
    'accelerator': 1 << 3,
    'custom': 1 << 4,
    }


def _pyopencl_platforms():
    import pyopencl as cl
    return cl.get_platforms()


def _name_matches_masks(name, includes, excludes):
    if len(includes) > 0:
        for include in includes:
            if re.search(include, name):
                break
        else:
            return False

    if len(excludes) > 0:
        for exclude in excludes:
            if re.search(exclude, name):
                return False

    return True


def device_type_names(type_bits):
    """
    Returns a tuple of names from :py:data:`DEVICE_TYPES` for the bits set in ``type_bits``.
    """
    return tuple(name for name, bit in DEVICE_TYPES.items() if type_bits & bit)


class DeviceParameters:
    """
    An assembly of parameters of a single device, taken from a ``pyopencl.Device``
    (or any object with the same attributes).

    .. py:attribute:: index

        Position of the device in its :py:class:`DeviceDirectory`.
        Used to identify the device when caching builds.

    .. py:attribute:: max_work_group_size

        Maximum number of work items in a work group (thread block).

    .. py:attribute:: max_work_item_sizes

        Tuple with the maximum work group size for each of the 3 dimensions.

    .. py:attribute:: device

        The native device object.
    """

    def __init__(self, device, index):

        self.index = index
        self.device = device

        self.name = device.name
        self.vendor = device.vendor
        self.platform_name = device.platform.name
        self.type = device_type_names(device.type)

        if self.platform_name == 'Apple' and 'cpu' in self.type:
        # Apple is being funny again.
        # On OSX 10.8.0 it reports the maximum block size as 1024, when it is really 128.
        # Moreover, if local_barrier() is used in the kernel, it becomes 1
            self.max_work_group_size = 1
            self.max_work_item_sizes = (1, 1, 1)
        else:
            self.max_work_group_size = device.max_work_group_size
            sizes = tuple(device.max_work_item_sizes)[:3]
            self.max_work_item_sizes = sizes + (1,) * (3 - len(sizes))

        self.local_mem_size = device.local_mem_size
        self.global_mem_size = device.global_mem_size
        self.compute_units = device.max_compute_units
        self.max_clock_frequency = device.max_clock_frequency
        self.available = bool(device.available)

        self.version = device.version
        self.driver_version = device.driver_version
        self.opencl_c_version = device.opencl_c_version

        self.extensions = tuple(device.extensions.split())
        self.supports_double = "cl_khr_fp64" in self.extensions
        self.supports_half = "cl_khr_fp16" in self.extensions

    def __repr__(self):
        return "DeviceParameters({index}, {name})".format(index=self.index, name=repr(self.name))


class DeviceDirectory:
    """
    A list of OpenCL devices with a selected ("current") one.
    The devices are enumerated on first access and cached until :py:meth:`refresh` is called.

    :param include_devices: a list of masks for a device name
        which will be used to pick devices to include.
    :param exclude_devices: a list of masks for a device name
        which will be used to pick devices to exclude.
    :param include_platforms: a list of masks for a platform name
        which will be used to pick platforms to include.
    :param exclude_platforms: a list of masks for a platform name
        which will be used to pick platforms to exclude.
    :param include_duplicate_devices: if ``False``, will only include a single device
        from the several with the same name available on a platform.
    :param get_platforms: a callable returning a list of platform objects
        (with ``name`` attribute and ``get_devices()`` method).
        Defaults to ``pyopencl.get_platforms``.
    :param backend: the :py:class:`~clkernel.backend.Backend` used by kernels
        created for this directory. Defaults to :py:class:`~clkernel.ocl.OpenCLBackend`.
    """

    def __init__(
            self, include_devices=None, exclude_devices=None,
            include_platforms=None, exclude_platforms=None,
            include_duplicate_devices=True, get_platforms=None, backend=None):

        self._include_devices = [] if include_devices is None else list(include_devices)
        self._exclude_devices = [] if exclude_devices is None else list(exclude_devices)
        self._include_platforms = [] if include_platforms is None else list(include_platforms)
        self._exclude_platforms = [] if exclude_platforms is None else list(exclude_platforms)
        self._include_duplicate_devices = include_duplicate_devices

        self._get_platforms = _pyopencl_platforms if get_platforms is None else get_platforms
        self._backend = backend

        self._devices = None
        self._current_index = None

    def _enumerate(self):
        devices = []

        for platform in self._get_platforms():

            seen_devices = set()

            if not _name_matches_masks(
                    platform.name, self._include_platforms, self._exclude_platforms):
                continue

            for device in platform.get_devices():
                if not _name_matches_masks(
                        device.name, self._include_devices, self._exclude_devices):
                    continue

                if not self._include_duplicate_devices and device.name in seen_devices:
                    continue

                seen_devices.add(device.name)
                devices.append(DeviceParameters(device, len(devices)))

        return devices

    def refresh(self):
        """
        Enumerates the devices again.
        The current selection is kept if its index is still valid,
        otherwise the first device (if any) is selected.
        """
        self._devices = self._enumerate()
        if self._current_index is None or self._current_index >= len(self._devices):
            self._current_index = 0 if len(self._devices) > 0 else None

    @property
    def devices(self):
        """
        The list of :py:class:`DeviceParameters` objects.
        """
        if self._devices is None:
            self.refresh()
        return list(self._devices)

    def __len__(self):
        return len(self.devices)

    def __getitem__(self, index):
        return self.devices[index]

    def __iter__(self):
        return iter(self.devices)

    @property
    def current(self):
        """
        The selected :py:class:`DeviceParameters`, or ``None`` if no device is selected.
        """
        devices = self.devices
        return None if self._current_index is None else devices[self._current_index]

    def select(self, index):
        """
        Selects the device number ``index`` and returns it.
        ``None`` deselects the current device.
        """
        num_devices = len(self.devices)
        if index is None:
            self._current_index = None
            return None
        if not 0 <= index < num_devices:
            raise InvalidDeviceIndex(index, num_devices)
        self._current_index = index
        return self._devices[index]

    def count(self, device_type='all'):
        """
        Counts the devices of the given type
        (``'all'`` or one of the keys of :py:data:`DEVICE_TYPES`).
        Returns a pair of the number of devices and the list of their indices.
        """
        if device_type != 'all' and device_type not in DEVICE_TYPES:
            raise ValueError("Unknown device type: " + repr(device_type))

        indices = [
            params.index for params in self.devices
            if device_type == 'all' or device_type in params.type]
        return len(indices), indices

    @property
    def backend(self):
        if self._backend is None:
            from clkernel.ocl import OpenCLBackend
            self._backend = OpenCLBackend()
        return self._backend

    def kernel(self, source, name=None, **kwds):
        """
        Creates a :py:class:`~clkernel.Kernel` for this directory
        (see its constructor for the description of the parameters).
        """
        from clkernel.kernel import Kernel
        return Kernel(self, source, name=name, **kwds)
