"""wirecraft protocol compiler."""

from .compiler import CompiledProtocol as CompiledProtocol
from .compiler import compile_protocol as compile_protocol
from .coordinator import Coordinator as Coordinator
from .coordinator import generate as generate
from .errors import *
from .grammar import compile_format as compile_format
from .loader import load as load
from .loader import load_file as load_file
from .profiles import ProfileRegistry as ProfileRegistry
from .types import *
