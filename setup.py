import subprocess
from pathlib import Path

from setuptools import find_packages, setup

DEFAULT_VERSION = "0.1.0"


def run_cmd(cmd):
    if isinstance(cmd, str):
        cmd = cmd.split(" ")
    return subprocess.check_output(cmd, stderr=subprocess.DEVNULL).decode(encoding="UTF-8").split("\n")


def get_last_tag() -> str:
    result = [v for v in run_cmd("git tag -l v*") if not v == ""]
    if len(result) == 0:
        return ""
    return result[-1]


def get_nb_commits_until(tag: str) -> int:
    return len([line for line in run_cmd(f"git log {tag}..HEAD --oneline") if not line == ""])


def get_version() -> str:
    try:
        last_tag = get_last_tag()
    except (subprocess.CalledProcessError, FileNotFoundError):
        return DEFAULT_VERSION
    if last_tag == "":
        return DEFAULT_VERSION
    return f"{'.'.join(last_tag.lstrip('v').split('.')[:-1])}.{get_nb_commits_until(last_tag)}"


long_description = Path("README.md").read_text()
requirements = Path("requirements.txt").read_text().splitlines()
version = get_version()


if __name__ == "__main__":
    setup(
        name="dualsimplex",
        version=version,
        packages=find_packages(exclude=["tests", "tests.*"]),
        include_package_data=True,
        long_description=long_description,
        long_description_content_type="text/markdown",
        install_requires=requirements,
        extras_require={"test": ["pytest"]},
        python_requires=">=3.8",
    )
