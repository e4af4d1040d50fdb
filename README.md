# mtensor

A small CPU tensor library built on NumPy. A `Tensor` views float32 storage
through a shape, element strides and an offset. Operations are objects whose
`forward` takes a list of operand tensors and returns a new tensor. When any
operand has `requires_grad` set, the result records a numbered graph node in
`grad_fn` that holds the operands.

## Install

```
pip install .
pip install ".[test]"   # with test dependencies
```

## Tensors

```python
import numpy as np
from mtensor.memory import Tensor, Contiguous, Clone, row_major_stride

x = Tensor.from_array(np.arange(6, dtype=np.float32).reshape(2, 3), requires_grad=True)
y = Contiguous().forward([x])   # dense row-major copy
z = Clone().forward([x])        # copy that keeps the strides (row-major if any stride is 0)
print(y.numpy(), y.numel())     # elements as a new ndarray, and 6
print(row_major_stride((2, 3))) # (3, 1)
```

`Tensor.accumulate_grad(grad)` stores a gradient on the tensor, or adds it to
the one already there.

## Operations

- `mtensor.memory`: `Contiguous`, `Clone`
- `mtensor.joining`: `Cat(dim)` joins along an existing dimension,
  `Stack(dim)` along a new one
- `mtensor.matmul`: `Matmul` multiplies two tensors with broadcast batch
  dimensions; a third operand is broadcast and added as a bias
- `mtensor.eltwise_math`: `Exp`, `Log`, `Sqrt`, `Pow(alpha, beta)`
  (`beta * x ** alpha`), `Linear(alpha, beta)` (`alpha * x + beta`)
- `mtensor.activations`: `Abs`, `Clip(alpha, beta)`, `Relu(alpha)` (negative
  inputs scaled by `alpha`), `Sigmoid`, `Tanh`
- `mtensor.normalization`: `BatchNormalization(training, running_mean,
  running_variance, momentum)`, `GroupNormalization(groups)`,
  `LayerNormalization`; each takes `[input, scale, shift]`

```python
from mtensor.joining import Cat
from mtensor.matmul import Matmul
from mtensor.eltwise_math import Exp

a = Tensor.from_array(np.ones((2, 3), dtype=np.float32))
b = Tensor.from_array(np.ones((3, 4), dtype=np.float32))
print(Matmul().forward([a, b]).numpy())       # every element is 3.0
print(Cat(0).forward([a, a]).shape)           # (4, 3)

w = Tensor.from_array(np.zeros(3, dtype=np.float32), requires_grad=True)
e = Exp().forward([w])
e.grad_fn.backward(Tensor.from_array(np.ones(3, dtype=np.float32)))
print(w.grad.numpy())                         # [1. 1. 1.]
```

In training mode, `BatchNormalization` normalizes with the batch statistics and,
when an operand requires gradients, updates the running mean and variance in
place with `momentum`. In inference mode it normalizes with the running
statistics. The graph nodes of the normalization operations keep the computed
`mean` and `variance`.

## Errors

Invalid arguments raise `ValueError`: a negative dimension for `Cat` or
`Stack`, mismatched operand shapes, a `Clip` range with `alpha > beta`, or
unsuitable shapes for normalization. `Matmul` reports a wrong operand count or
incompatible shapes as `RuntimeError`.

## Limitations

- Gradients flow back only through the element-wise operations and
  activations (`backward` on their graph nodes). `Contiguous`, `Clone`, `Cat`,
  `Stack`, `Matmul` and the normalization operations record graph nodes but
  have no backward pass.
- There is no automatic traversal of the graph; `backward` is called on each
  node by hand.
- There are no pooling or convolution operations.

## Tests

```
pytest
```