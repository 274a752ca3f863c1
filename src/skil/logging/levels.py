"""
HUMAN logging level -- Readable progress for the person running skil.

Custom level between INFO (20) and WARNING (30). It does not indicate
severity: it marks the few events a user wants to see (source resolved,
skills found, skill installed) without the technical noise of INFO/DEBUG.

Hierarchy:
    debug  (10) -> git stderr, HTTP status, fallbacks
    info   (20) -> internal operations (config written, skill copied)
    human  (25) -> what skil is doing, in plain words
    warn   (30) -> non-fatal problems (lock file reset)
    error  (40) -> errors
"""

import logging

import structlog

# Custom level: between INFO (20) and WARNING (30)
HUMAN = 25
logging.addLevelName(HUMAN, "HUMAN")


# structlog's stdlib BoundLogger proxies .log(HUMAN, ...) to Logger.human()
def _human_method(self, message, *args, **kwargs):
    if self.isEnabledFor(HUMAN):
        self._log(HUMAN, message, args, **kwargs)


logging.Logger.human = _human_method

# Register the level name so BoundLogger.log(HUMAN, ...) does not raise KeyError: 25
structlog.stdlib.LEVEL_TO_NAME[HUMAN] = "human"
structlog.stdlib.NAME_TO_LEVEL["human"] = HUMAN

# Unconfigured structlog (library use, tests) writes through PrintLogger
structlog.PrintLogger.human = structlog.PrintLogger.msg
