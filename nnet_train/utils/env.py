import logging
from gettext import gettext as _
from typing import Dict, List

from easydict import EasyDict as edict

logger = logging.getLogger(__name__)

ENV_PREFIX = "NNET_"


def _set_path(cfg: edict, keys: List[str], value):
    *parents, last = keys
    node = cfg
    for key in parents:
        if node.get(key) is None:
            node[key] = edict()
        node = node[key]
    node[last] = value


def load_cfg_from_env(cfg: edict, env: Dict[str, str], prefix: str = ENV_PREFIX):
    """
    Override configuration entries from environment variables.

    ``NNET_momentum=0.9`` sets ``cfg.momentum``; a double underscore
    descends into nested entries, so ``NNET_a__b=1`` sets ``cfg.a.b``.
    Values are kept as strings.
    """
    for name in sorted(env):
        if not name.startswith(prefix) or len(name) == len(prefix):
            continue
        keys = name[len(prefix):].split("__")
        value = env[name]
        logger.warning(
            _("Changing configuration entry from environment variable {name}: {key}={value}").format(  # noqa:E501
                name=name, key=".".join(keys), value=value
            )
        )
        _set_path(cfg, keys, value)
    return cfg
