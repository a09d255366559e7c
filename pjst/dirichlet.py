import numpy as np
from scipy.special import psi

max_iter = 30
converge_criteria = 1e-4
min_prior = 1e-6


def collapsed_parameter_estimation(z, alpha, max_iter=max_iter):
    """Estimating a dirichlet parameter in the collapsed sampling environment of Dir-Mult

    Minka's fixed point iteration,
        alpha_k <- alpha_k * sum_i [psi(z_ik + alpha_k) - psi(alpha_k)] / sum_i [psi(z_i + sum(alpha)) - psi(sum(alpha))]

    Parameters
    ----------

    z: assignment count, N x K matrix
    alpha: initial guess on the dirichlet parameter (K-dim), not modified

    Returns
    -------
    alpha: ndarray, estimated parameter, every entry at least `min_prior`
    """
    z = np.asarray(z, dtype=float)
    alpha = np.array(alpha, dtype=float)
    z_sum = z.sum(1)
    if not np.any(z_sum > 0):
        return alpha

    for _ in range(max_iter):
        alpha_sum = alpha.sum()
        numerator = np.sum(psi(z + alpha) - psi(alpha), 0)
        denominator = np.sum(psi(z_sum + alpha_sum) - psi(alpha_sum))
        new_alpha = np.maximum(alpha * numerator / denominator, min_prior)
        converged = np.max(np.abs(new_alpha - alpha)) < converge_criteria
        alpha = new_alpha
        if converged:
            break

    return alpha


def collapsed_scale_estimation(counts, base, scale, max_iter=max_iter):
    """Estimating the concentration of dirichlet priors `scale * base` whose base measure stays fixed

    Every row of `counts` is the observation of one Dir-Mult group sharing `scale`,
        scale <- scale * sum base * [psi(n + scale * base) - psi(scale * base)]
                       / sum_rows B * [psi(N + scale * B) - psi(scale * B)]
    where N and B are the row sums of counts and base.

    Parameters
    ----------
    counts: ndarray, shape (..., n_voca)
    base: ndarray, broadcastable to counts, strictly positive
    scale: float, initial guess

    Returns
    -------
    scale: float, at least `min_prior`
    """
    counts = np.asarray(counts, dtype=float)
    base = np.broadcast_to(np.asarray(base, dtype=float), counts.shape)
    row_counts = counts.sum(-1)
    row_base = base.sum(-1)
    if not np.any(row_counts > 0):
        return scale

    for _ in range(max_iter):
        numerator = np.sum(base * (psi(counts + scale * base) - psi(scale * base)))
        denominator = np.sum(row_base * (psi(row_counts + scale * row_base) - psi(scale * row_base)))
        new_scale = max(scale * numerator / denominator, min_prior)
        converged = abs(new_scale - scale) < converge_criteria * scale
        scale = new_scale
        if converged:
            break

    return float(scale)
