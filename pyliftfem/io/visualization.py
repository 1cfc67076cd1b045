"""pyliftfem.io.visualization"""
import matplotlib.pyplot as plt
import scipy.sparse as sp


def plot_sparsity_pattern(pattern, filename=None, *, markersize=0.5, show=False, ax=None):
    """
    Draws the non-zero structure of a sparse matrix or pattern with ``spy``.

    Args:
        pattern: scipy sparse matrix (boolean or numeric).
        filename (str, optional): If given, the figure is saved there (the
                                  format follows the extension, e.g. ``.svg``).
        show (bool, optional): Calls ``plt.show()`` when True.
        ax (matplotlib.axes.Axes, optional): Axes to draw into.

    Returns:
        The matplotlib Axes.
    """
    own_figure = ax is None
    if own_figure:
        fig, ax = plt.subplots(figsize=(6, 6))
    else:
        fig = ax.figure
    ax.spy(sp.csr_matrix(pattern), markersize=markersize)
    ax.set_title(f"{pattern.shape[0]} DoFs, {sp.csr_matrix(pattern).nnz} entries")
    if filename is not None:
        fig.savefig(filename)
    if show:
        plt.show()
    elif own_figure and filename is not None:
        plt.close(fig)
    return ax
