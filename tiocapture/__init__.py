from .tio_capture import *
from .tio_dispatch import *
from .tio_config import *
