"""
Model script for `nnet_train train examples/xor_model.py`.

A two-layer sigmoid network learning XOR with a quadratic output,
plus a small quadratic regularizer on the hidden layer (enable it with
--add-regularizer true --objective-scales-str output-reg:0.01).
"""

import torch

from nnet_train.nnet import (
    GeneralMatrix,
    Nnet,
    NnetExample,
    NnetIo,
    NonlinearComponent,
    ObjectiveType,
)

MODEL_NAME = "xor"
NUM_EPOCHS = 50

_INPUTS = torch.tensor([[0.0, 0.0], [0.0, 1.0], [1.0, 0.0], [1.0, 1.0]])
_TARGETS = torch.tensor([[0.0], [1.0], [1.0], [0.0]])


def init_model(cfg):
    nnet = Nnet()
    nnet.add_input("input", 2)
    nnet.add_component("affine1", torch.nn.Linear(2, 8), "input", learning_rate=0.5)
    nnet.add_component("sigmoid1", NonlinearComponent("sigmoid", 8), "affine1")
    nnet.add_component("affine2", torch.nn.Linear(8, 1), "sigmoid1", learning_rate=0.5)
    nnet.add_component("sigmoid2", NonlinearComponent("sigmoid", 1), "affine2")
    nnet.add_output("output", "sigmoid2", ObjectiveType.QUADRATIC)
    nnet.add_output("output-reg", "affine1", ObjectiveType.QUADRATIC)
    return nnet


def get_examples(cfg):
    generator = torch.Generator().manual_seed(int(cfg.get("seed", 0)))
    for _ in range(8):
        noise = 0.05 * torch.randn(_INPUTS.shape, generator=generator)
        yield NnetExample(
            [
                NnetIo("input", GeneralMatrix.full(_INPUTS + noise)),
                NnetIo("output", GeneralMatrix.full(_TARGETS)),
            ]
        )
