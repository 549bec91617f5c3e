from .json_io import load_net, net_from_dict, net_from_json, net_to_dict, net_to_json
from .debug import setup_logging

__all__ = [
    "load_net",
    "net_from_dict",
    "net_from_json",
    "net_to_dict",
    "net_to_json",
    "setup_logging",
]
