import os.path

from setuptools import setup


setup_dir = os.path.split(os.path.abspath(__file__))[0]
with open(os.path.join(setup_dir, 'README.rst')) as f:
    DOCUMENTATION = f.read()

globals_dict = {}
with open(os.path.join(setup_dir, 'clkernel', '__init__.py')) as f:
    for line in f:
        if line.startswith('VERSION'):
            exec(line, globals_dict)
VERSION = '.'.join([str(x) for x in globals_dict['VERSION']])

dependencies = ['mako', 'numpy', 'pyopencl']

setup(
    name='clkernel',
    packages=['clkernel'],
    provides=['clkernel'],
    install_requires=dependencies,
    extras_require={'test': ['pytest']},
    python_requires='>=3.6',
    version=VERSION,
    description='OpenCL kernels callable with numpy arrays',
    long_description=DOCUMENTATION,
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Topic :: Scientific/Engineering :: Mathematics'
    ]
)
