# conftest.py
import matplotlib
import pytest

matplotlib.use('Agg')


@pytest.fixture(autouse=True)
def close_figures():
    """Drop any figure a test leaves open."""
    yield
    import matplotlib.pyplot as plt
    plt.close('all')
