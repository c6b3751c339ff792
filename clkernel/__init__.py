from clkernel.errors import KernelError, AmbiguousKernel, KernelNotFound, \
    KernelNotFoundInBuild, InvalidAliasCount, UnresolvedArgumentType, WrongArgumentCount, \
    InvalidThreadBlockSize, InvalidDeviceIndex, NoDeviceSelected, BuildError, ExecutionError, \
    ComplexInputCopyWarning
from clkernel.signature import ArgumentDescriptor, extract_interface, parse_parameters
from clkernel.geometry import DispatchGeometry
from clkernel.devices import DeviceDirectory, DeviceParameters
from clkernel.backend import Backend
from clkernel.kernel import Kernel


VERSION = (0, 1, 0)
