"""
Provides functions to retrieve project and system information.

This module contains utility functions for gathering metadata about the
project's version and the runtime environment. It can retrieve the current
Git version (either from a tag or commit hash) and report the process's
peak memory usage, which the entry point logs after long estimation runs.

:Authors:
 - QSobol developers
"""
import os
import platform
import subprocess

if os.name == 'posix':
    from resource import getrusage, RUSAGE_SELF

import gitinfo
import psutil


def get_git_version():
    """
    Retrieves current version from tag or commit identifier

    Returns
    -------
    str
        current version, or "unknown" outside of a git checkout
    """
    try:
        gittag = (
            subprocess.check_output(["git", "tag", "--points-at", "HEAD"],
                                    stderr=subprocess.DEVNULL).strip().decode()
        )
    except (subprocess.CalledProcessError, FileNotFoundError):
        return "unknown"
    if gittag != "":
        return gittag
    info = gitinfo.get_git_info()
    if not info:
        return "unknown"
    return info["commit"][0:7]


def get_peak_memory_use():
    """
    Return the peak memory usage of the current process.

    Returns
    -------
    float: Peak memory usage in MB
    """
    if platform.system() == "Windows":
        process = psutil.Process(os.getpid())
        return process.memory_info().peak_wset / 1024 ** 2
    elif platform.system() == "Linux":
        return getrusage(RUSAGE_SELF).ru_maxrss / 1024
    elif platform.system() == "Darwin":
        return getrusage(RUSAGE_SELF).ru_maxrss / 1024 ** 2
    else:
        raise ValueError(f"Not supported OS ({platform.system()})!")


if __name__ == "__main__":
    print(get_git_version())
    print(get_peak_memory_use())
