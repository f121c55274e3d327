"""
Standard functions for logging to the system journal with syslog.
"""

import syslog


IDENT = "pytmp102"


def log_debug(s: str):
    syslog.syslog(syslog.LOG_DEBUG, f"{IDENT}: {s}")

def log_info(s: str):
    syslog.syslog(syslog.LOG_INFO, f"{IDENT}: {s}")

def log_warning(s: str):
    syslog.syslog(syslog.LOG_WARNING, f"{IDENT}: {s}")

def log_error(s: str):
    syslog.syslog(syslog.LOG_ERR, f"{IDENT}: {s}")
