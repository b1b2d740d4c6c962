from functools import reduce
from typing import Sequence

import jax
import jax.numpy as jnp
from jax import jit

jax.config.update("jax_enable_x64", True)


def identity_operator() -> jnp.ndarray:
    return jnp.eye(2, dtype=jnp.complex128)


def x_operator() -> jnp.ndarray:
    return jnp.array([[0, 1], [1, 0]], dtype=jnp.complex128)


def y_operator() -> jnp.ndarray:
    return jnp.array([[0, -1j], [1j, 0]], dtype=jnp.complex128)


def z_operator() -> jnp.ndarray:
    return jnp.array([[1, 0], [0, -1]], dtype=jnp.complex128)


def hadamard_operator() -> jnp.ndarray:
    return jnp.array([[1, 1], [1, -1]], dtype=jnp.complex128) / jnp.sqrt(2)


def s_operator() -> jnp.ndarray:
    return jnp.array([[1, 0], [0, 1j]], dtype=jnp.complex128)


def t_operator() -> jnp.ndarray:
    return jnp.array([[1, 0], [0, jnp.exp(1j * jnp.pi / 4)]], dtype=jnp.complex128)


@jit
def rx_operator(theta: float) -> jnp.ndarray:
    c = jnp.cos(theta / 2)
    s = jnp.sin(theta / 2)
    return jnp.array([[c, -1j * s], [-1j * s, c]], dtype=jnp.complex128)


@jit
def ry_operator(theta: float) -> jnp.ndarray:
    c = jnp.cos(theta / 2)
    s = jnp.sin(theta / 2)
    return jnp.array([[c, -s], [s, c]], dtype=jnp.complex128)


@jit
def rz_operator(theta: float) -> jnp.ndarray:
    return jnp.diag(
        jnp.array([jnp.exp(-0.5j * theta), jnp.exp(0.5j * theta)], dtype=jnp.complex128)
    )


def sx_operator() -> jnp.ndarray:
    return rx_operator(jnp.pi / 2)


def inv_sx_operator() -> jnp.ndarray:
    return rx_operator(-jnp.pi / 2)


@jit
def phase_shift_operator(theta: float) -> jnp.ndarray:
    return jnp.diag(jnp.array([1.0, jnp.exp(1j * theta)], dtype=jnp.complex128))


@jit
def single_qubit_operator(
    alpha_r: float, alpha_i: float, beta_r: float, beta_i: float, global_phase: float
) -> jnp.ndarray:
    """
    General single qubit unitary

    .. math::
        U = e^{i \\phi}
        \\begin{bmatrix}
          \\alpha & -\\beta^* \\\\
          \\beta & \\alpha^*
        \\end{bmatrix}
    """
    alpha = alpha_r + 1j * alpha_i
    beta = beta_r + 1j * beta_i
    matrix = jnp.array(
        [[alpha, -jnp.conj(beta)], [beta, jnp.conj(alpha)]], dtype=jnp.complex128
    )
    return jnp.exp(1j * global_phase) * matrix


def controlled_operator(operator: jnp.ndarray) -> jnp.ndarray:
    """
    Two qubit controlled version of a single qubit operator, control qubit
    being the most significant one
    """
    out = jnp.eye(4, dtype=jnp.complex128)
    return out.at[2:, 2:].set(operator)


def controlled_not_operator() -> jnp.ndarray:
    return controlled_operator(x_operator())


def controlled_y_operator() -> jnp.ndarray:
    return controlled_operator(y_operator())


def controlled_z_operator() -> jnp.ndarray:
    return controlled_operator(z_operator())


@jit
def controlled_phase_operator(theta: float) -> jnp.ndarray:
    return jnp.diag(jnp.array([1.0, 1.0, 1.0, jnp.exp(1j * theta)], dtype=jnp.complex128))


def swap_operator() -> jnp.ndarray:
    return jnp.array(
        [[1, 0, 0, 0], [0, 0, 1, 0], [0, 1, 0, 0], [0, 0, 0, 1]], dtype=jnp.complex128
    )


def iswap_operator() -> jnp.ndarray:
    return jnp.array(
        [[1, 0, 0, 0], [0, 0, 1j, 0], [0, 1j, 0, 0], [0, 0, 0, 1]], dtype=jnp.complex128
    )


@jit
def xy_operator(theta: float) -> jnp.ndarray:
    c = jnp.cos(theta / 2)
    s = jnp.sin(theta / 2)
    return jnp.array(
        [[1, 0, 0, 0], [0, c, 1j * s, 0], [0, 1j * s, c, 0], [0, 0, 0, 1]],
        dtype=jnp.complex128,
    )


def kron_reduce(arrays: Sequence[jnp.ndarray]) -> jnp.ndarray:
    """
    Kronecker product over a sequence of matrices, first matrix being the
    most significant factor
    """
    if not arrays:
        return jnp.array([[1]], dtype=jnp.complex128)
    return reduce(jnp.kron, arrays[1:], arrays[0])


def pauli_rotation_operator(pauli: jnp.ndarray, number_qubits: int, theta: float) -> jnp.ndarray:
    """
    Computes exp(-i theta/2 P^{\\otimes n}), which reduces to
    cos(theta/2) I - i sin(theta/2) P^{\\otimes n} since the product squares
    to identity
    """
    product = kron_reduce([pauli] * number_qubits)
    identity = jnp.eye(product.shape[0], dtype=jnp.complex128)
    return jnp.cos(theta / 2) * identity - 1j * jnp.sin(theta / 2) * product


def multi_qubit_ms_operator(number_qubits: int, theta: float) -> jnp.ndarray:
    return pauli_rotation_operator(x_operator(), number_qubits, theta)


def multi_qubit_zz_operator(number_qubits: int, theta: float) -> jnp.ndarray:
    return pauli_rotation_operator(z_operator(), number_qubits, theta)


def damping_superoperator(gate_time: float, rate: float) -> jnp.ndarray:
    """
    Superoperator of amplitude damping in the vectorised density matrix
    basis (rho_00, rho_01, rho_10, rho_11)
    """
    prob = 1.0 - jnp.exp(-gate_time * rate)
    sqrt = jnp.sqrt(1.0 - prob)
    return jnp.array(
        [
            [1.0, 0.0, 0.0, prob],
            [0.0, sqrt, 0.0, 0.0],
            [0.0, 0.0, sqrt, 0.0],
            [0.0, 0.0, 0.0, 1.0 - prob],
        ]
    )


def depolarising_superoperator(gate_time: float, rate: float) -> jnp.ndarray:
    prob = 0.75 * (1.0 - jnp.exp(-gate_time * rate))
    proba1 = 1.0 - (2.0 / 3.0) * prob
    proba2 = 1.0 - (4.0 / 3.0) * prob
    proba3 = (2.0 / 3.0) * prob
    return jnp.array(
        [
            [proba1, 0.0, 0.0, proba3],
            [0.0, proba2, 0.0, 0.0],
            [0.0, 0.0, proba2, 0.0],
            [proba3, 0.0, 0.0, proba1],
        ]
    )


def dephasing_superoperator(gate_time: float, rate: float) -> jnp.ndarray:
    prob = 0.5 * (1.0 - jnp.exp(-2.0 * gate_time * rate))
    return jnp.array(
        [
            [1.0, 0.0, 0.0, 0.0],
            [0.0, 1.0 - 2.0 * prob, 0.0, 0.0],
            [0.0, 0.0, 1.0 - 2.0 * prob, 0.0],
            [0.0, 0.0, 0.0, 1.0],
        ]
    )
