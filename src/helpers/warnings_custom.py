"""
This module modifies how warnings are handled and displayed throughout the
project. Based on configuration settings, it can simplify the format of
warning messages to make them more readable or escalate a category of
warnings into exceptions. The latter is useful to stop a run at the first
numpy ``RuntimeWarning`` (overflow, invalid value) raised inside a model.

Importing the module applies the configuration.

:Authors:
 - QSobol developers
"""
import warnings
import builtins
from helpers.config import settings


def custom_formatwarning(msg, *args, **kwargs):
    """
    This function overrides the default multi-line warning format. It
    discards all parts of the warning except for the message itself and
    prepends the message with its type (e.g., 'RuntimeWarning').

    Parameters
    ----------
    msg: Warning
        The warning message object.
    *args: tuple
        Additional arguments (ignored).
    **kwargs: dict
        Additional keyword arguments (ignored).

    Returns
    -------
    str
        The formatted, single-line warning string.
    """
    # ignore everything except the message
    return type(msg).__name__ + ": " + str(msg) + "\n"


def apply_warning_settings(debug_settings=None):
    """
    Applies the warning format and escalation rules.

    Parameters
    ----------
    debug_settings : Box, optional
        The ``debug`` section of the settings, by default ``settings.debug``.
    """
    if debug_settings is None:
        debug_settings = settings.debug

    if not debug_settings.output_detailed_warnings:
        warnings.formatwarning = custom_formatwarning

    if debug_settings.output_warnings_as_errors:
        warnings.filterwarnings(
            "error", category=getattr(builtins, debug_settings.warningsforerrors)
        )


apply_warning_settings()
