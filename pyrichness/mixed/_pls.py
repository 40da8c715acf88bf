"""
Penalized Least Squares (PLS) solver for linear mixed models.

For fixed θ (and hence fixed Λ_θ), this solves the penalized least squares
problem to obtain conditional modes of the random effects and profiled
fixed effects:

    minimize ‖y - Xβ - ZΛu‖² + ‖u‖²

where u = Λ⁻¹b are the "spherical" random effects. σ² is profiled out
in closed form from the penalized RSS.

References:
    Bates, D., Maechler, M., Bolker, B., & Walker, S. (2015).
    Fitting Linear Mixed-Effects Models Using lme4.
    Journal of Statistical Software, 67(1), 1-48. Section 2.
"""

from __future__ import annotations

from dataclasses import dataclass
import numpy as np
from numpy.typing import NDArray
import scipy.linalg as sla


@dataclass(frozen=True)
class PLSResult:
    """Result from penalized least squares solve.

    Attributes:
        beta: Fixed effects estimates (p,).
        u: Spherical random effects (q,).
        b: Conditional modes b = Λu (q,).
        sigma_sq: Profiled residual variance.
        pwrss: Penalized residual sum of squares
               = ‖y - Xβ - Zb‖² + ‖u‖².
        L: Cholesky factor of (Λ'Z'ZΛ + I), shape (q, q).
        RX: Cholesky factor of the Schur complement for β, shape (p, p).
        fitted: Xβ + Zb (n,).
        residuals: y - fitted (n,).
    """
    beta: NDArray
    u: NDArray
    b: NDArray
    sigma_sq: float
    pwrss: float
    L: NDArray
    RX: NDArray
    fitted: NDArray
    residuals: NDArray


def solve_pls(
    X: NDArray,
    Z: NDArray,
    y: NDArray,
    Lambda: NDArray,
    reml: bool = False,
) -> PLSResult:
    """Solve the penalized least squares problem.

    For the LMM: y = Xβ + Zb + ε, where b ~ N(0, σ²ΛΛ'), ε ~ N(0, σ²I).

    The normal equations of the penalized system are

        [Λ'Z'ZΛ + I   Λ'Z'X ] [u]   [Λ'Z'y]
        [X'ZΛ         X'X   ] [β] = [X'y  ]

    and are solved block-wise: u is eliminated through
    L = cholesky(Λ'Z'ZΛ + I), β comes from the Schur complement.

    Args:
        X: Fixed effects design matrix (n, p).
        Z: Random effects design matrix (n, q).
        y: Response vector (n,).
        Lambda: Relative covariance factor (q, q).
        reml: If True, divide pwrss by (n-p) for σ²; if False, divide by n.

    Returns:
        PLSResult with all estimates.
    """
    n, p = X.shape
    q = Z.shape[1]

    ZLam = Z @ Lambda  # (n, q)

    LtL = ZLam.T @ ZLam + np.eye(q)
    L = np.linalg.cholesky(LtL)  # lower triangular, PD because of + I

    # Cross-products
    ZLam_t_y = ZLam.T @ y         # (q,)
    ZLam_t_X = ZLam.T @ X         # (q, p)
    Xt_y = X.T @ y                # (p,)
    Xt_X = X.T @ X                # (p, p)

    cu = sla.solve_triangular(L, ZLam_t_y, lower=True)   # L⁻¹ Λ'Z'y
    CX = sla.solve_triangular(L, ZLam_t_X, lower=True)   # L⁻¹ Λ'Z'X

    # RX RX' = X'X - CX'CX  (the Schur complement)
    RtR = Xt_X - CX.T @ CX
    rhs_beta = Xt_y - CX.T @ cu

    try:
        RX = np.linalg.cholesky(RtR)
        tmp = sla.solve_triangular(RX, rhs_beta, lower=True)
        beta = sla.solve_triangular(RX.T, tmp, lower=False)
    except np.linalg.LinAlgError:
        beta, _, _, _ = np.linalg.lstsq(RtR, rhs_beta, rcond=None)
        eigvals = np.maximum(np.linalg.eigvalsh(RtR), 1e-20)
        RX = np.diag(np.sqrt(eigvals))

    # L L' u = Λ'Z'(y - Xβ)
    ZLam_t_resid = ZLam_t_y - ZLam_t_X @ beta
    cu_final = sla.solve_triangular(L, ZLam_t_resid, lower=True)
    u = sla.solve_triangular(L.T, cu_final, lower=False)

    b = Lambda @ u

    fitted = X @ beta + Z @ b
    residuals = y - fitted

    pwrss = float(np.sum(residuals**2)) + float(u @ u)

    if reml:
        sigma_sq = pwrss / (n - p)
    else:
        sigma_sq = pwrss / n

    return PLSResult(
        beta=beta,
        u=u,
        b=b,
        sigma_sq=sigma_sq,
        pwrss=pwrss,
        L=L,
        RX=RX,
        fitted=fitted,
        residuals=residuals,
    )
