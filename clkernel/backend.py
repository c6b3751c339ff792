"""
The interface between kernel objects and the native compiler/launcher.

.. py:class:: Backend

    A backend compiles kernel source files for a device
    and launches the compiled kernels, synchronously.
    Devices are passed as :py:class:`~clkernel.devices.DeviceParameters` objects.
    Failures must be reported as :py:class:`~clkernel.errors.BuildError`
    and :py:class:`~clkernel.errors.ExecutionError` respectively.
"""


class Backend:

    def compile(self, device, source_file, options):
        """
        Compiles the source file ``source_file`` for ``device``
        with the compiler option string ``options``.
        Returns the list of names of the kernels found in the compiled program.
        Compiled kernels must stay available to :py:meth:`run`
        until another program containing a kernel with the same name is compiled for this device.
        """
        raise NotImplementedError()

    def run(self, device, name, geometry, local_size, args, read_only):
        """
        Executes the kernel ``name`` previously compiled for ``device``.

        :param geometry: a tuple of 6 integers:
            the global offset (3 values) followed by the global size (3 values).
        :param local_size: a tuple of 3 integers with the work group size.
        :param args: a list of ``numpy`` arrays, one per kernel parameter.
        :param read_only: a list of booleans parallel to ``args``.
            Read-only single-element arguments are passed by value,
            all the others are passed as buffers.
        :returns: a list parallel to ``args``, where the read-write arguments
            are replaced with their contents after the kernel has finished.
        """
        raise NotImplementedError()
