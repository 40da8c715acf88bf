"""
Satterthwaite degrees of freedom for linear contrasts of fixed effects.

Computes approximate denominator degrees of freedom for t-tests on
contrasts l'β, following lmerTest (Kuznetsova et al., 2017). The same
routine serves the coefficient table (l = unit vectors) and the pairwise
comparisons of habitat means (l = difference of two level rows).

For each contrast:

    df = 2 × Var(l'β̂)² / [g' × A × g]

where:
    g_j = ∂Var(l'β̂)/∂φ_j    (gradient w.r.t. the variance parameters)
    A = 2 H⁻¹                 (asymptotic covariance of φ̂, H = deviance Hessian)
    φ = (θ, σ)                (random-intercept SDs and residual SD)

Both g and H are computed by central finite differences. For random
intercepts the deviance and C(θ) depend on θ only through θ², so central
differences remain valid at a boundary estimate θ = 0.

References:
    Kuznetsova, A., Brockhoff, P. B., & Christensen, R. H. B. (2017).
    lmerTest Package: Tests in Linear Mixed Effects Models.
    Journal of Statistical Software, 82(13), 1-26.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from pyrichness.mixed._random_effects import RandomEffectSpec, build_lambda
from pyrichness.mixed._pls import solve_pls
from pyrichness.mixed._deviance import log_det_sq


def satterthwaite_df(
    theta: NDArray,
    X: NDArray,
    Z: NDArray,
    y: NDArray,
    specs: list[RandomEffectSpec],
    reml: bool = False,
    contrasts: NDArray | None = None,
    eps: float = 1e-4,
) -> NDArray:
    """Compute Satterthwaite denominator df for each contrast.

    Args:
        theta: Converged θ̂ vector.
        X, Z, y: Model matrices.
        specs: Random effect specifications.
        reml: REML or ML deviance.
        contrasts: (m, p) matrix whose rows are contrast vectors l.
            Default: identity, i.e. one df per fixed effect.
        eps: Relative step size for numerical differentiation.

    Returns:
        Array of Satterthwaite df, one per contrast row (m,).
    """
    n, p = X.shape
    n_theta = len(theta)
    if contrasts is None:
        contrasts = np.eye(p)
    contrasts = np.atleast_2d(np.asarray(contrasts, dtype=np.float64))
    m = contrasts.shape[0]

    Lambda = build_lambda(theta, specs)
    pls = solve_pls(X, Z, y, Lambda, reml=reml)
    sigma_sq = pls.sigma_sq
    sigma = np.sqrt(sigma_sq)

    C = compute_C(theta, X, Z, specs)
    var_c = np.einsum('ij,jk,ik->i', contrasts, C, contrasts)

    # dC/dθ_j contracted with each contrast: (m, n_theta)
    dvar_dtheta = np.zeros((m, n_theta), dtype=np.float64)
    for j in range(n_theta):
        h = eps * max(abs(theta[j]), 1.0)
        theta_plus = theta.copy()
        theta_minus = theta.copy()
        theta_plus[j] += h
        theta_minus[j] -= h
        dC = (compute_C(theta_plus, X, Z, specs)
              - compute_C(theta_minus, X, Z, specs)) / (2.0 * h)
        dvar_dtheta[:, j] = np.einsum('ij,jk,ik->i', contrasts, dC, contrasts)

    hessian = _full_deviance_hessian(theta, sigma, X, Z, y, specs, reml, eps)
    try:
        A = 2.0 * np.linalg.inv(hessian)
    except np.linalg.LinAlgError:
        A = 2.0 * np.linalg.pinv(hessian)

    df = np.zeros(m, dtype=np.float64)
    for k in range(m):
        var_k = sigma_sq * var_c[k]

        # g = [dVar/dθ_1, ..., dVar/dθ_m, dVar/dσ]
        g = np.zeros(n_theta + 1, dtype=np.float64)
        g[:n_theta] = sigma_sq * dvar_dtheta[k, :]
        g[n_theta] = 2.0 * sigma * var_c[k]

        denom = float(g @ A @ g)
        if denom > 0 and var_k > 0:
            df[k] = 2.0 * var_k**2 / denom
        else:
            df[k] = float(n - p)

        df[k] = max(df[k], 1.0)

    return df


def compute_C(
    theta: NDArray,
    X: NDArray,
    Z: NDArray,
    specs: list[RandomEffectSpec],
) -> NDArray:
    """Compute C(θ) = (X' V*(θ)⁻¹ X)⁻¹ where V* = ZΛΛ'Z' + I.

    Var(β̂) = σ² C(θ).
    """
    n = X.shape[0]
    Lambda = build_lambda(theta, specs)
    V_star = Z @ Lambda @ Lambda.T @ Z.T + np.eye(n)
    XtVX = X.T @ np.linalg.solve(V_star, X)
    try:
        return np.linalg.inv(XtVX)
    except np.linalg.LinAlgError:
        return np.linalg.pinv(XtVX)


def _full_deviance_hessian(
    theta: NDArray,
    sigma: float,
    X: NDArray,
    Z: NDArray,
    y: NDArray,
    specs: list[RandomEffectSpec],
    reml: bool,
    eps: float,
) -> NDArray:
    """Hessian of the deviance w.r.t. (θ, σ) with σ not profiled out.

    ML:   d(θ, σ) = log|L_θ|² + n·log(σ²) + pwrss(θ)/σ²
    REML: d(θ, σ) = log|L_θ|² + log|RX|² + (n-p)·log(σ²) + pwrss(θ)/σ²
    """
    n, p = X.shape
    n_theta = len(theta)
    n_params = n_theta + 1

    def deviance(phi):
        th, sig = phi[:n_theta], phi[n_theta]
        pls_local = solve_pls(X, Z, y, build_lambda(th, specs), reml=reml)
        sig_sq = sig ** 2
        dev = log_det_sq(pls_local.L) + pls_local.pwrss / sig_sq
        if reml:
            return dev + log_det_sq(pls_local.RX) + (n - p) * np.log(sig_sq)
        return dev + n * np.log(sig_sq)

    phi0 = np.append(theta, sigma)
    h = eps * np.maximum(np.abs(phi0), 1.0)
    d0 = deviance(phi0)

    H = np.zeros((n_params, n_params), dtype=np.float64)
    for j in range(n_params):
        e_j = np.zeros(n_params)
        e_j[j] = h[j]
        H[j, j] = (deviance(phi0 + e_j) - 2.0 * d0
                   + deviance(phi0 - e_j)) / (h[j] ** 2)

        for l in range(j + 1, n_params):
            e_l = np.zeros(n_params)
            e_l[l] = h[l]
            d_pp = deviance(phi0 + e_j + e_l)
            d_pm = deviance(phi0 + e_j - e_l)
            d_mp = deviance(phi0 - e_j + e_l)
            d_mm = deviance(phi0 - e_j - e_l)
            H[j, l] = (d_pp - d_pm - d_mp + d_mm) / (4.0 * h[j] * h[l])
            H[l, j] = H[j, l]

    return H
