"""
Trainer options.

Options can come from code, from command-line flags (see ``register``) or
from a loose configuration tree such as the EasyDict the CLI builds, in
which case string values from environment overrides are coerced to the
field types.
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping
import logging

from ...errors import ConfigError

logger = logging.getLogger(__name__)

_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off"}


def parse_objective_scales(objective_scales_str: str) -> Dict[str, float]:
    """
    Parse a "name:scale:name:scale..." string into a scale map.

    Args:
        objective_scales_str: Colon-separated output names and scales

    Returns:
        Dictionary of output_name -> scale
    """
    if not objective_scales_str:
        return {}

    tokens = objective_scales_str.split(":")
    if len(tokens) % 2 != 0:
        raise ConfigError(
            f"Incorrect format for objective-scales-str {objective_scales_str}"
        )

    scales = {}
    for output_name, scale_str in zip(tokens[::2], tokens[1::2]):
        try:
            scales[output_name] = float(scale_str)
        except ValueError:
            raise ConfigError(
                f"Could not convert objective-scale {scale_str} to float."
            ) from None
    return scales


def _coerce(value: Any, target_type: type, name: str) -> Any:
    if target_type is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
        elif isinstance(value, int):
            return bool(value)
        raise ConfigError(f"Option {name} expects a boolean, got {value!r}")
    try:
        if target_type is int and isinstance(value, float) and not value.is_integer():
            raise ValueError
        return target_type(value)
    except (TypeError, ValueError):
        raise ConfigError(
            f"Option {name} expects {target_type.__name__}, got {value!r}"
        ) from None


@dataclass
class NnetTrainerOptions:
    """Configuration of NnetTrainer."""

    momentum: float = 0.0
    max_param_change: float = 2.0
    zero_component_stats: bool = True
    store_component_stats: bool = True
    apply_deriv_weights: bool = True
    add_regularizer: bool = False
    print_interval: int = 100
    objective_scales_str: str = ""
    compiler_cache_capacity: int = 64

    def validate(self) -> "NnetTrainerOptions":
        if self.momentum < 0.0:
            raise ConfigError(f"momentum must be >= 0, got {self.momentum}")
        if self.max_param_change < 0.0:
            raise ConfigError(
                f"max_param_change must be >= 0, got {self.max_param_change}"
            )
        if self.print_interval <= 0:
            raise ConfigError(
                f"print_interval must be positive, got {self.print_interval}"
            )
        if self.compiler_cache_capacity <= 0:
            raise ConfigError(
                "compiler_cache_capacity must be positive, "
                f"got {self.compiler_cache_capacity}"
            )
        parse_objective_scales(self.objective_scales_str)
        return self

    def objective_scales(self) -> Dict[str, float]:
        return parse_objective_scales(self.objective_scales_str)

    @classmethod
    def from_dict(cls, cfg: Mapping[str, Any]) -> "NnetTrainerOptions":
        """
        Build options from a mapping, ignoring keys that are not options.

        Args:
            cfg: Mapping (dict, EasyDict) of option name -> value

        Returns:
            Validated NnetTrainerOptions
        """
        kwargs = {}
        for f in fields(cls):
            if f.name in cfg and cfg[f.name] is not None:
                kwargs[f.name] = _coerce(cfg[f.name], f.type, f.name)
        return cls(**kwargs).validate()

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def register(cls, parser):
        """Add one command-line flag per option to an argparse parser."""
        defaults = cls()
        helps = {
            "momentum": "Momentum constant to apply during training "
            "(e.g. 0.5 or 0.9). Note: the gradient is scaled by (1 - momentum) "
            "so the effective learning rate does not change.",
            "max_param_change": "The maximum change in parameters allowed per "
            "minibatch, measured in Euclidean norm over the entire model "
            "(the change is clipped to this value). 0 disables clipping.",
            "zero_component_stats": "Zero the component stats of the model "
            "before training.",
            "store_component_stats": "Accumulate activation stats in the "
            "nonlinear components during training.",
            "apply_deriv_weights": "Apply the per-frame derivative weights "
            "stored with the example.",
            "add_regularizer": "Add a regularizer objective on '<output>-reg' "
            "output nodes.",
            "print_interval": "Number of minibatches between progress reports "
            "of the objective function.",
            "objective_scales_str": "Objective scales for the outputs, as "
            "<output-name>:<scale>:<output-name>:<scale>...",
            "compiler_cache_capacity": "Number of compiled computations to cache.",
        }
        for f in fields(cls):
            flag = "--" + f.name.replace("_", "-")
            default = getattr(defaults, f.name)
            if f.type is bool:
                parser.add_argument(
                    flag,
                    dest=f.name,
                    type=lambda v, name=f.name: _coerce(v, bool, name),
                    default=default,
                    metavar="BOOL",
                    help=helps.get(f.name),
                )
            else:
                parser.add_argument(
                    flag, dest=f.name, type=f.type, default=default, help=helps.get(f.name)
                )
