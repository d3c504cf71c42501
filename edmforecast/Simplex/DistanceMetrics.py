import numpy as np
import torch

from edmforecast.exceptions import InvalidParameter

def euclidean(q, k):
    """L2 distances between query state vectors q (n_queries, dim) and library vectors k (n_library, dim)."""
    # exact differences, matmul shortcut loses precision on near-identical vectors
    return torch.cdist(q, k, p=2, compute_mode='donot_use_mm_for_euclid_dist')

def manhattan(q, k):
    """L1 distances, summed absolute coordinate differences of the state vectors."""
    return torch.cdist(q, k, p=1)

def infinity_norm(q, k):
    """Largest absolute coordinate difference between two state vectors."""
    return torch.cdist(q, k, p=float('inf'))

METRICS = {
    'euclidean': euclidean,
    'manhattan': manhattan,
    'infinity_norm': infinity_norm,
}

# names of the same metrics in sklearn.neighbors
SKLEARN_METRICS = {
    'euclidean': 'euclidean',
    'manhattan': 'manhattan',
    'infinity_norm': 'chebyshev',
}

def pairwise_distances(queries: np.ndarray, library: np.ndarray, metric: str = 'euclidean') -> np.ndarray:
    """
    Distances from every query vector to every library vector.
    :param queries: array of shape (n_queries, dim)
    :param library: array of shape (n_library, dim)
    :param metric: one of METRICS
    :return: array of shape (n_queries, n_library)
    """
    if metric not in METRICS:
        raise InvalidParameter(f'unknown metric {metric!r}, expected one of {sorted(METRICS)}')
    q = torch.from_numpy(np.ascontiguousarray(queries, dtype=np.float64))
    k = torch.from_numpy(np.ascontiguousarray(library, dtype=np.float64))
    with torch.no_grad():
        return METRICS[metric](q, k).numpy()
