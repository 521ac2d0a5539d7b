from .accounts import *  # noqa
from .channel import *  # noqa
