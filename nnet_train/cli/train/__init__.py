from gettext import gettext as _
from pathlib import Path

from nnet_train.core.training.config import NnetTrainerOptions

COMMAND_DESCRIPTION = _("Train a network on the examples of a model script")


def command(parser):
    parser.add_argument(
        "model_path",
        type=Path,
        help=_(
            "Path to the model script. It must define init_model(cfg), "
            "returning the network, and get_examples(cfg), returning an "
            "iterable of examples."
        ),
    )

    parser.add_argument(
        "-n",
        "--num-epochs",
        dest="num_epochs",
        type=int,
        default=None,
        help=_("Passes over the examples (default: NUM_EPOCHS of the script, or 1)"),
    )

    parser.add_argument(
        "--seed",
        type=int,
        default=0,
        help=_("Random seed for torch"),
    )

    NnetTrainerOptions.register(parser)

    def handle(args):
        from .train import handle as train_handle

        return train_handle(args)

    return handle
