"""
Post-processing of dynaconf settings to allow replacing list entries
such as the index set of interest or the CoV values of a sweep.

With ``merge_enabled`` a local settings file extends list settings instead
of replacing them. Writing ``["CLEAR", 1, 2, "END"]`` in an override file
replaces the list by the entries between the two markers.

:Authors:
 - QSobol developers
"""

REPLACEABLE_LISTS = ["estimator.indices", "sweep.cov_values"]


def clear_list(entries):
    """
    Returns the entries between the ``CLEAR`` and ``END`` markers.

    Parameters
    ----------
    entries : list
        A list setting, possibly containing the markers.

    Returns
    -------
    list or None
        The replacement list, or None if no ``CLEAR`` marker is present.
    """
    if "CLEAR" not in entries:
        return None
    newlist = []
    clear = False
    for item in entries:
        if item == "END":
            clear = False
        if clear:
            newlist.append(item)
        if item == "CLEAR":
            clear = True
    return newlist


def post(settings):
    """
    A post-hook for Dynaconf to enable list-type setting overrides.
    This function is automatically executed by Dynaconf after settings are
    loaded.

    Parameters
    ----------
    settings : dynaconf.LazySettings
        The Dynaconf settings object, passed automatically by the hook runner.

    Returns
    -------
    dict
        The modified settings, converted to a dictionary as required by
        Dynaconf post-hooks.
    """
    for field in REPLACEABLE_LISTS:
        if settings.exists(field):
            newlist = clear_list(list(settings.get(field)))
            if newlist is not None:
                settings.set(field, newlist, merge=False)
    return settings.as_dict()
