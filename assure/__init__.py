# Assure
# Declarative browser tests (.assure scripts) driven over the Chrome DevTools Protocol

from .config import EngineConfig
from .errors import AssureError
from .executor import Executor, execute
from .script import parse
from .session import Session, close_session, create_session, open_session

__all__ = ['EngineConfig', 'AssureError', 'Executor', 'execute', 'parse',
           'Session', 'create_session', 'close_session', 'open_session']
__version__ = '1.0.0'
