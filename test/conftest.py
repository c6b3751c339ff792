import pytest

from clkernel import DeviceDirectory

from helpers import StubBackend, stub_platforms, emulate_add_to_vector, emulate_scale


def pytest_addoption(parser):
    parser.addoption("--device-include-mask", action="append", default=[],
        help="Run tests on matching OpenCL devices only")
    parser.addoption("--device-exclude-mask", action="append", default=[],
        help="Skip tests on matching OpenCL devices")


@pytest.fixture
def backend():
    return StubBackend(emulators=dict(addToVector=emulate_add_to_vector, scale=emulate_scale))


@pytest.fixture
def directory(backend):
    return DeviceDirectory(get_platforms=stub_platforms, backend=backend)


@pytest.fixture(scope='session')
def ocl_directory(request):
    pytest.importorskip("pyopencl")

    include_mask = request.config.getoption("device_include_mask")
    exclude_mask = request.config.getoption("device_exclude_mask")
    directory = DeviceDirectory(
        include_devices=include_mask, exclude_devices=exclude_mask,
        include_duplicate_devices=False)

    try:
        num_devices = len(directory)
    except Exception as exc:
        pytest.skip("OpenCL is not available: " + str(exc))
    if num_devices == 0:
        pytest.skip("No OpenCL devices found")

    return directory
