from flask import Blueprint

bp = Blueprint("dashboard", __name__)

# Import submodules so their routes register on the same bp
from . import applications  # noqa: E402,F401
from . import feedback  # noqa: E402,F401
from . import insights  # noqa: E402,F401
from . import billing  # noqa: E402,F401
