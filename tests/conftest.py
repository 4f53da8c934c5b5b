import logging

import pytest
from datetime import datetime

from wrrecord.s4.s4 import RowerSession

@pytest.fixture
def fixed_now():
    return lambda: datetime(2024, 3, 1, 18, 30, 5)


@pytest.fixture
def make_session(fixed_now):
    def _make(fake) -> RowerSession:
        return RowerSession(fake, clock=fake.clock, now=fixed_now)
    return _make


@pytest.fixture
def restore_logging():
    """Undo the logging configuration installed by wrrecord.main()."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for logger in (root, logging.getLogger('s4serial'), logging.getLogger('s4data')):
        for handler in logger.handlers[:]:
            if handler not in handlers:
                logger.removeHandler(handler)
                handler.close()
    root.setLevel(level)
    for name in ('s4serial', 's4data'):
        logging.getLogger(name).setLevel(logging.NOTSET)
        logging.getLogger(name).propagate = True
