import time
import numpy as np
from gcv_spline.fitter import SplineFitter, Mode, effective_p, assemble_system
from gcv_spline.banded import band_factor, band_solve
from gcv_spline.trace import residual_trace


def benchmark(n, order=2):
    print(f"Benchmark N={n}, order={order}")
    x = np.sort(np.random.uniform(0, 1, n))
    y = np.sin(2 * np.pi * x) + np.random.normal(0, 0.1, n)

    fitter = SplineFitter(x, order=order)
    p, _ = effective_p(1.0 / fitter.scale_, fitter.scale_)

    # Measure factor + solve
    start = time.time()
    for _ in range(10):
        lu = band_factor(assemble_system(fitter.basis_, fitter.penalty_, p),
                         overwrite=True)
        band_solve(lu, y)
    end = time.time()
    fit_time = (end - start) / 10.0
    print(f"Factor + solve time (avg of 10): {fit_time:.6f} s")

    # Measure the trace from the inverse bands
    start = time.time()
    n_trace_runs = 5 if n < 2000 else 1
    for _ in range(n_trace_runs):
        residual_trace(fitter.penalty_, lu, p)
    end = time.time()
    trace_time = (end - start) / n_trace_runs
    print(f"Trace time (avg of {n_trace_runs}): {trace_time:.6f} s")

    print(f"Ratio (Trace / Fit): {trace_time / fit_time:.2f}x")

    # Full GCV search
    start = time.time()
    result = fitter.fit(y, mode=Mode.GCV)
    end = time.time()
    print(f"GCV fit: {end - start:.4f} s, p={result.stats.p_used:.4g}, "
          f"trace={result.stats.trace:.2f}")


if __name__ == "__main__":
    for n in [500, 1000, 5000]:
        benchmark(n)
