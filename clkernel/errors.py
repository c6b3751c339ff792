"""
Exceptions raised by the kernel wrapper.
All of them derive from :py:class:`KernelError`.
"""


class KernelError(Exception):
    """
    Base class for all errors raised by ``clkernel``.
    """
    pass


class AmbiguousKernel(KernelError):
    """
    Thrown when no kernel name was requested,
    but the source contains more than one kernel function.
    """

    def __init__(self, candidates):
        self.candidates = list(candidates)
        KernelError.__init__(
            self,
            "The kernel must be specified - the detected kernels are "
            "{" + ", ".join(self.candidates) + "}.")


class KernelNotFound(KernelError):
    """
    Thrown when the requested kernel is not declared in the source exactly once,
    or when ``name`` is ``None`` and the source has no kernels at all.
    """

    def __init__(self, name, candidates):
        self.name = name
        self.candidates = list(candidates)
        if name is None:
            message = "Cannot find any kernels in the source."
        else:
            message = (
                "The requested kernel (" + name + ") was not found - the detected kernels are "
                "{" + ", ".join(self.candidates) + "}.")
        KernelError.__init__(self, message)


class KernelNotFoundInBuild(KernelError):
    """
    Thrown by :py:meth:`~clkernel.Kernel.build` if the compiled program
    does not contain the expected kernel (e.g. it was removed by conditional compilation).
    """

    def __init__(self, name, found):
        self.name = name
        self.found = list(found)
        KernelError.__init__(
            self,
            "Expected to find kernel " + name + " but instead the kernels found were "
            "{" + ", ".join(self.found) + "}.")


class InvalidAliasCount(KernelError):
    """
    Thrown by :py:meth:`~clkernel.Kernel.define_types`
    if the number of types does not match the number of aliases.
    """

    def __init__(self, types, aliases):
        self.types = list(types)
        self.aliases = list(aliases)
        KernelError.__init__(
            self,
            "Expected a matching type for each alias: [" + ", ".join(self.aliases) + "] "
            "but instead got the types [" + ", ".join(self.types) + "].")


class UnresolvedArgumentType(KernelError):
    """
    Thrown on a call if some kernel parameter types could not be translated
    to element types, and no override was given with :py:meth:`~clkernel.Kernel.define_types`.
    """

    def __init__(self, name, aliases):
        self.aliases = list(aliases)
        KernelError.__init__(
            self,
            "Cannot cast arguments of kernel '" + name + "': the types "
            "[" + ", ".join(self.aliases) + "] are unknown. "
            "Use define_types() to map them to element types.")


class WrongArgumentCount(KernelError):
    """
    Thrown when a kernel is called with a number of arguments
    different from the number of its parameters.
    """

    def __init__(self, expected, declaration):
        self.expected = expected
        KernelError.__init__(
            self,
            "Expected " + str(expected) + " inputs. The kernel has the following declaration:"
            "\n" + declaration + ";")


class InvalidThreadBlockSize(KernelError):
    """
    Thrown when the thread block size exceeds the limits of the selected device.
    """
    pass


class InvalidDeviceIndex(KernelError):
    """
    Thrown when selecting a device outside of the enumerated ones.
    """

    def __init__(self, index, num_devices):
        self.index = index
        KernelError.__init__(
            self,
            "Invalid OpenCL device id: " + str(index) + ". "
            "Select a device id from the range 0:" + str(num_devices) + ".")


class NoDeviceSelected(KernelError):
    """
    Thrown when a kernel has to be built, but it does not have a device.
    """
    pass


class BuildError(KernelError):
    """
    Wraps an error reported by the backend compiler.
    The original exception is available as ``__cause__``.
    """
    pass


class ExecutionError(KernelError):
    """
    Wraps an error reported by the backend during kernel execution.
    The original exception is available as ``__cause__``.
    """
    pass


class ComplexInputCopyWarning(UserWarning):
    """
    Issued when an ``inplace`` call has complex arguments,
    which have to be copied to be passed to the backend.
    """
    pass
