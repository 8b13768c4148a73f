from .tio_errors import *
from .tio_meta import *
from .tio_codec import encode, decode, decode_value, type_width
from .tio_client import *
from .tio_session import *
