# src/persistguard/core/logging/
# ├─ __init__.py            # public API: setup_logging, make_dict_config
# ├─ builder.py             # make_dict_config(settings) + setup_logging(settings)
# ├─ formatters.py          # JsonFormatter, ColorFormatter
# └─ handlers.py            # handler config factories (console / rotating files)


from .builder import setup_logging, make_dict_config
from .formatters import JsonFormatter, ColorFormatter

__all__ = ["setup_logging", "make_dict_config", "JsonFormatter", "ColorFormatter"]
