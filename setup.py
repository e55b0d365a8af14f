import re
from codecs import open
from os.path import abspath, dirname, join

from setuptools import setup

here = abspath(dirname(__file__))

packages = ["mysql_to_d1"]

requires = [
    "Click>=8.1.3",
    "mysql-connector-python>=8.2.0",
    "python-dateutil>=2.9.0.post0",
    "python-dotenv>=1.0.0",
    "pytimeparse2",
    "requests>=2.31.0",
    "simplejson>=3.19.0",
    "tabulate",
    "tqdm>=4.65.0",
    "typing_extensions ; python_version<'3.11'",
]

test_requires = [
    "Faker>=18.10.0",
    "pytest>=7.3.1",
    "pytest-mock",
]

with open(join(here, "src", "mysql_to_d1", "__init__.py"), "r", "utf-8") as fh:
    version = re.search(r'^__version__\s*=\s*[\'"]([^\'"]+)[\'"]', fh.read(), re.M).group(1)  # type: ignore

with open(join(here, "README.md"), "r", "utf-8") as fh:
    readme = fh.read()

setup(
    name="mysql-to-d1",
    version=version,
    description="A simple Python tool to transfer data from MySQL to Cloudflare D1",
    long_description=readme,
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=packages,
    include_package_data=True,
    python_requires=">=3.8",
    install_requires=requires,
    extras_require={"test": test_requires},
    license="MIT",
    zip_safe=False,
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: End Users/Desktop",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: Implementation :: CPython",
        "Topic :: Database",
    ],
    entry_points="""
        [console_scripts]
        mysql2d1=mysql_to_d1.cli:main
    """,
)
