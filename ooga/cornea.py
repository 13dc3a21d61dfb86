"""Cornea centre from LED positions and the directions of their glints.

Each LED gets an auxiliary frame whose x axis points at the LED and whose
xz-plane holds the glint direction. The unknown per LED is the x coordinate of
the glint point in that frame. A least-squares fit makes the cornea centres
implied by every LED agree.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from itertools import combinations

import numpy as np
from scipy.optimize import least_squares

MAX_ITER = 1000
PRECISION = 1e-12
RHO = 0.0077


def pairs_of_two(n: int) -> int:
    """Number of unordered pairs among ``n`` items (0 for fewer than two)."""
    return n * (n - 1) // 2 if n > 1 else 0


def _normalized(vector) -> np.ndarray:
    v = np.asarray(vector, dtype=float).reshape(3)
    norm = np.linalg.norm(v)
    if norm == 0:
        raise ValueError("cannot normalise a zero vector")
    return v / norm


def rotation_matrix(vec_along_x_axis, vec_on_xz_plane) -> np.ndarray:
    """Rotation from the auxiliary frame into the real frame.

    The auxiliary x axis points along ``vec_along_x_axis`` and
    ``vec_on_xz_plane`` lies on its xz-plane.
    """
    on_plane = _normalized(vec_on_xz_plane)
    xn = _normalized(vec_along_x_axis)
    yn = _normalized(np.cross(on_plane, xn))
    zn = _normalized(np.cross(xn, yn))
    return np.column_stack([xn, yn, zn])


@dataclass
class CorneaData:
    """Per-LED quantities in the LED's auxiliary frame."""

    l_aux: float = 0.0
    alpha_aux: float = 0.0
    R: np.ndarray = field(default_factory=lambda: np.eye(3))
    R_inv: np.ndarray = field(default_factory=lambda: np.eye(3))


@dataclass
class CorneaFit:
    """Result of a cornea centre fit."""

    centre: np.ndarray
    error: float
    iterations: int
    guesses: np.ndarray
    converged: bool


class Cornea:
    """Solves the cornea centre in the eye camera coordinate system."""

    def __init__(self) -> None:
        self.data: list[CorneaData] = []

    @property
    def nof_data(self) -> int:
        """Number of LED/glint pairs set up by :meth:`create`."""
        return len(self.data)

    def create(self, led_pos, glint_pos) -> None:
        """Set up the auxiliary frames for each LED and its glint."""
        leds = np.asarray(led_pos, dtype=float).reshape(-1, 3)
        glints = np.asarray(glint_pos, dtype=float).reshape(-1, 3)
        if len(leds) != len(glints):
            raise ValueError(
                f"got {len(leds)} LED positions but {len(glints)} glint positions"
            )
        data = []
        for led, glint in zip(leds, glints):
            rot = rotation_matrix(led, glint)
            rot_inv = np.linalg.inv(rot)
            glint_aux = _normalized(rot_inv @ glint)
            data.append(
                CorneaData(
                    l_aux=float(np.linalg.norm(rot_inv @ led)),
                    # The LED lies on the auxiliary x axis.
                    alpha_aux=float(np.arccos(np.clip(glint_aux[0], -1.0, 1.0))),
                    R=rot,
                    R_inv=rot_inv,
                )
            )
        self.data = data

    def _arrays(self):
        if not self.data:
            raise ValueError("no LED data; call create() first")
        l_aux = np.array([d.l_aux for d in self.data])
        alpha = np.array([d.alpha_aux for d in self.data])
        rots = np.stack([d.R for d in self.data])
        return l_aux, alpha, rots

    def _check_gx(self, gx) -> np.ndarray:
        values = np.asarray(gx, dtype=float).ravel()
        if values.size != len(self.data):
            raise ValueError(
                f"expected {len(self.data)} parameters, got {values.size}"
            )
        return values

    def _centres(self, gx) -> np.ndarray:
        """Cornea centre implied by each LED, shape (N, 3)."""
        l_aux, alpha, rots = self._arrays()
        gx = self._check_gx(gx)
        tan_a = np.tan(alpha)
        half = (alpha - np.arctan2(gx * tan_a, l_aux - gx)) * 0.5
        a_term = gx - RHO * np.sin(half)
        b_term = gx * tan_a + RHO * np.cos(half)
        return rots[:, :, 0] * a_term[:, None] + rots[:, :, 2] * b_term[:, None]

    def _centre_derivatives(self, gx) -> np.ndarray:
        """Derivative of each implied centre by its own parameter, shape (N, 3)."""
        l_aux, alpha, rots = self._arrays()
        gx = self._check_gx(gx)
        tan_a = np.tan(alpha)
        dist = l_aux - gx
        ratio = gx * tan_a / dist
        half = (alpha - np.arctan2(gx * tan_a, dist)) / 2.0
        slope = tan_a / dist + gx * tan_a / dist ** 2
        factor = RHO * slope / (2.0 * (1.0 + ratio ** 2))
        d_a = 1.0 + np.cos(half) * factor
        d_b = tan_a + np.sin(half) * factor
        return rots[:, :, 0] * d_a[:, None] + rots[:, :, 2] * d_b[:, None]

    def residuals(self, gx) -> np.ndarray:
        """Three differences of implied centres for every LED pair, in pair order."""
        centres = self._centres(gx)
        pairs = list(combinations(range(len(centres)), 2))
        if not pairs:
            return np.zeros(0)
        first, second = (np.array(idx) for idx in zip(*pairs))
        return (centres[first] - centres[second]).ravel()

    def jacobian(self, gx) -> np.ndarray:
        """Jacobian of :meth:`residuals`, shape (3 * pairs, N)."""
        derivs = self._centre_derivatives(gx)
        n = len(derivs)
        jac = np.zeros((3 * pairs_of_two(n), n))
        for block, (i, j) in enumerate(combinations(range(n), 2)):
            rows = slice(3 * block, 3 * block + 3)
            jac[rows, i] = derivs[i]
            jac[rows, j] = -derivs[j]
        return jac

    def compute_centre(self, led_pos, glint_pos, guesses) -> CorneaFit:
        """Fit the glint parameters and return the averaged cornea centre."""
        self.create(led_pos, glint_pos)
        x0 = np.asarray(guesses, dtype=float).ravel()
        if x0.size != len(self.data):
            raise ValueError(
                f"expected {len(self.data)} initial guesses, got {x0.size}"
            )
        if len(self.data) < 2:
            raise ValueError("at least two LEDs are needed")

        result = least_squares(
            self.residuals,
            x0,
            jac=self.jacobian,
            method="lm",
            xtol=PRECISION,
            ftol=PRECISION,
            gtol=PRECISION,
            max_nfev=MAX_ITER,
        )
        fitted = result.x

        jac = self.jacobian(fitted)
        covariance = np.linalg.pinv(jac.T @ jac)
        error = float(np.sqrt(np.diagonal(covariance).sum()))

        centre = self._centres(fitted).mean(axis=0)
        return CorneaFit(
            centre=centre,
            error=error,
            iterations=int(result.nfev),
            guesses=fitted.copy(),
            converged=bool(result.status > 0),
        )