import numpy as np

from dualsimplex import DualSimplex


def make_mixture(n_rows=40, n_cols=30, n_components=3, seed=42):
    """Non-negative mixture v = w @ h with the columns of h summing to one"""
    rng = np.random.RandomState(seed)
    w = rng.uniform(size=(n_rows, n_components))
    h = rng.dirichlet(np.ones(n_components), size=n_cols).T
    return w @ h, w, h


def make_inputs(noise=0.05, seed=42):
    """Projection of a synthetic mixture and a perturbed starting point"""
    v, w, h = make_mixture(seed=seed)
    n_components = h.shape[0]
    s, r, svrt = DualSimplex.svd_init(v, n_components=n_components, random_state=0)
    x_true = h @ r.T
    rng = np.random.RandomState(seed + 1)
    x = x_true + noise * rng.randn(n_components, n_components)
    return dict(
        x=x,
        omega=np.linalg.inv(x),
        d_w=np.ones(n_components),
        svrt=svrt,
        r=r,
        s=s,
        n=float(v.shape[0]),
        m=float(v.shape[1]),
    ), v, x_true
