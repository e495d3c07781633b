import re
import os
import sys

from setuptools import setup, find_packages


if sys.version_info[:2] < (3, 6):
    print("Python >= 3.6 is required.")
    sys.exit(-1)


def about(package):
    ret = {}
    filename = os.path.join(os.path.dirname(__file__), package, "__about__.py")
    with open(filename, 'rb') as file:
        exec(compile(file.read(), filename, 'exec'), ret)
    return ret


def changelog():
    """Return the changes for the latest version only"""
    if not os.path.exists("changelog.md"):
        return ""

    with open("changelog.md", encoding="utf-8") as file:
        log = file.read()
    match = re.search(r"## ([\s\S]*?)\n##\s", log)
    return match.group(1) if match else ""


info = about("latticemodels")
setup(
    name=info['__title__'],
    version=info['__version__'],
    description=info['__summary__'],
    long_description=info['__doc__'] + "\n\n" + changelog(),
    url=info['__url__'],
    license=info['__license__'],
    keywords="tight-binding lattice hamiltonian sparse physics",

    author=info['__author__'],
    author_email=info['__email__'],

    platforms=['Unix', 'Windows'],
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Science/Research',
        'Topic :: Scientific/Engineering :: Physics',
        'License :: OSI Approved :: BSD License',
        'Programming Language :: Python :: 3 :: Only',
        'Programming Language :: Python :: Implementation :: CPython',
    ],

    packages=find_packages(exclude=['test*', 'docs*']) + ['latticemodels.tests',
                                                         'latticemodels.tests.utils'],
    package_dir={'latticemodels.tests': 'tests'},
    include_package_data=True,
    install_requires=['numpy>=1.17', 'scipy>=1.3', 'pytest>=5.0'],
    extras_require={'tests': ['pytest>=5.0']},
    zip_safe=False,
)
