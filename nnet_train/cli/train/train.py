import logging
import os
from gettext import gettext as _
from pathlib import Path

import torch
from easydict import EasyDict as edict

from nnet_train.core.training import NnetTrainer, NnetTrainerOptions
from nnet_train.errors import NnetTrainError
from nnet_train.nnet.utils import num_parameters
from nnet_train.utils.env import load_cfg_from_env
from nnet_train.utils.misc import load_module, try_tqdm

logger = logging.getLogger(__name__)


def build_cfg(args) -> edict:
    cfg = edict()
    for key in NnetTrainerOptions().to_dict():
        cfg[key] = getattr(args, key)
    cfg.num_epochs = args.num_epochs
    cfg.seed = args.seed
    cfg.model_path = str(args.model_path)
    return load_cfg_from_env(cfg, os.environ)


def handle(args):
    model_path = Path(args.model_path).resolve()
    logger.debug(_("Final model path: '{model_path}'").format(model_path=model_path))

    model_script = load_module(model_path)
    cfg = build_cfg(args)

    try:
        options = NnetTrainerOptions.from_dict(cfg)
        torch.manual_seed(int(cfg.seed))

        nnet = model_script.init_model(cfg)
        logger.info(
            _("Training '{name}' with {num_params} parameters").format(
                name=model_script.__dict__.get("MODEL_NAME", model_path.stem),
                num_params=num_parameters(nnet),
            )
        )
        logger.debug(nnet.info())

        num_epochs = cfg.num_epochs
        if num_epochs is None:
            num_epochs = model_script.__dict__.get("NUM_EPOCHS", 1)
        num_epochs = int(num_epochs)

        trainer = NnetTrainer(options, nnet)
        for epoch in range(num_epochs):
            for eg in try_tqdm(model_script.get_examples(cfg), desc=f"Epoch {epoch}"):
                trainer.train(eg)
    except NnetTrainError as e:
        logger.error(_("Training failed: {error}").format(error=e))
        return 1

    if not trainer.print_total_stats():
        logger.error(_("No objective weight was accumulated, training failed"))
        return 1
    return 0
