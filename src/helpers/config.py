"""
Core configuration management for the project.

This module centralises all configuration handling using the Dynaconf library.
It loads settings from multiple sources, including the default TOML file,
local overrides, and secrets. Values may also be overridden by environment
variables carrying the ``QSOBOL_`` prefix (e.g. ``QSOBOL_ESTIMATOR__N_MC``).

Furthermore, it includes utility functions for:
- Saving the current configuration state to a file for reproducibility.
- Setting up a flexible logging system based on an external config file.
- Generating standardised, run-specific output paths.

:Authors:
 - QSobol developers
"""
from dynaconf import Dynaconf
from dynaconf import inspect_settings
from dynaconf import loaders
from dynaconf.utils.boxing import DynaBox

import os
import logging.config
import pathlib
import datetime
import gitinfo
from helpers.information import get_git_version

current_directory = pathlib.Path(__file__).parent.parent.absolute()
settings_filename = os.getenv("QSOBOL_SETTINGS_FILE_FOR_DYNACONF", default="settings/settings_local.toml")

settings = Dynaconf(root_path=current_directory,
                    merge_enabled=True,
                    envvar_prefix="QSOBOL",
                    settings_files=["settings/settings.toml", settings_filename,
                                    "settings/.secrets.toml"],)

output_path_task = None

logger = logging.getLogger("qsobol")


def output_conf(settings_to_output=None):
    """
    Writes the current settings configuration and history to files.
    This function serialises the state of a Dynaconf settings object to disk,
    creating two files: one with the current configuration (including Git repo
    info) and another with the full settings history (how values were loaded
    and merged).

    Parameters
    ----------
    settings_to_output : Dynaconf, optional
        The settings object to output. If None, the global `settings`
        object is used, by default None.

    Other Parameters
    ----------------
    settings.output.output_settings_path : str
        The subfolder within the run's output path to save the files.
    settings.output.output_settings_filename : str
        The filename for the current settings dump.
    settings.output.output_settingshistory_filename : str
        The filename for the settings history dump.
    """
    if settings_to_output is None:
        settings_to_output = settings

    data = settings_to_output.as_dict()
    data["repos"] = gitinfo.get_git_info() or {}
    data["repos"]["version"] = get_git_version()
    loaders.write(
        os.path.join(
            get_output_path(subfolder=settings.output.output_settings_path),
            settings.output.output_settings_filename,
        ),
        DynaBox(data).to_dict(),
    )

    inspect_settings(
        settings_to_output,
        to_file=os.path.join(
            get_output_path(subfolder=settings.output.output_settings_path),
            settings.output.output_settingshistory_filename,
        ),
        dumper="json",
    )


def config_logging():
    """
    Configures the project's logging system from a file.
    This function initialises the Python logging framework using the
    configuration file specified in the settings. It re-routes file handlers
    to write logs to run-specific files, so that logs from different runs
    and loggers are kept separate.
    """
    configfile = os.path.join(
            current_directory, settings.logging.configfile
    )
    logfolder = settings.logging.folder
    runid = settings.main.run_id

    logging.config.fileConfig(configfile, disable_existing_loggers=False)
    os.makedirs(logfolder, exist_ok=True)

    for name in logging.root.manager.loggerDict:
        logger_to_redirect = logging.getLogger(name)
        numfilehandlers = 0
        for handler in list(logger_to_redirect.handlers):
            if handler.name is not None and "file" in handler.name:
                numfilehandlers += 1
                fhandler = handler

                postfix = "" if numfilehandlers < 2 else "_" + handler.name
                newhandler = logging.FileHandler(
                    os.path.join(
                        logfolder,
                        "qsobol" + str(runid) + "_" + name + postfix + ".log",
                    ),
                    "w",
                )
                newhandler.setFormatter(fhandler.formatter)
                newhandler.setLevel(fhandler.level)
                logger_to_redirect.removeHandler(fhandler)
                fhandler.close()
                logger_to_redirect.addHandler(newhandler)

    logger.info("Logging set up using config file " + configfile)


def get_output_path(
    runid=None,
    subfolder=None,
    task=None,
    createfolder=True,
):
    """
    Defines the output path for sweep files, plots and settings dumps.
    If not existing, the folder is created.

    Parameters
    ----------
    runid: int or str
        the run ID the output data is associated with
    subfolder: str
        last part of the output folder
    task: str
        task name; an empty or missing task is replaced by a time stamp
    createfolder: bool
        If True, the folder will be created if non-existent

    Other Parameters
    ----------------

    - settings.main.run_id
    - settings.main.task
    - settings.main.output_path

    Returns
    -------
    str
        The absolute path to the designated output directory.
    """
    global output_path_task

    if runid is None:
        runid = settings.main.run_id
    if subfolder is None:
        subfolder = ""
    if task is None:
        task = settings.main.task

    if not task:
        # one time stamp per process
        if output_path_task is None:
            output_path_task = datetime.datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        task = output_path_task

    if not os.path.isabs(settings.main.output_path):
        opath = os.path.abspath(
            os.path.join(
                current_directory,
                "..",
                settings.main.output_path,
                task,
                str(runid),
            )
        )
    else:
        opath = os.path.abspath(
            os.path.join(
                settings.main.output_path,
                task,
                str(runid),
            )
        )

    output_path_sub = os.path.join(opath, subfolder)
    if createfolder:
        os.makedirs(output_path_sub, exist_ok=True)
    return output_path_sub
