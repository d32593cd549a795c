# ============================================================
# stepsort - Custom Sorter Template
# ============================================================
#
# Rules:
#   1. Define a function called  sort(ops, arr)
#   2. Go through the primitives for every "interesting" step:
#        ops.compare(a, b, (i, j))  -> -1 / 0 / 1
#        ops.swap(arr, i, j)
#        ops.access(arr, i)         -> value
#        ops.write(arr, i, value)
#      They are where pause and single-step take effect.
#   3. Mutate `arr` in-place - do NOT return a new list.
#   4. Optionally set NAME = "My Algorithm"  (used as display name)
#
# Load it with:  stepsort run --sorter example_custom_sorter.py
# or list it under "custom_sorters" in stepsort.json.
# ============================================================

NAME = "Stooge Sort"   # <-- change this to whatever you like


def sort(ops, arr):
    """Stooge Sort - O(n^2.7) - famously terrible, famously entertaining."""

    def stooge(lo, hi):
        if ops.compare(arr[lo], arr[hi], (lo, hi)) > 0:
            ops.swap(arr, lo, hi)

        if hi - lo + 1 > 2:
            t = (hi - lo + 1) // 3
            stooge(lo, hi - t)
            stooge(lo + t, hi)
            stooge(lo, hi - t)

    if len(arr) > 1:
        stooge(0, len(arr) - 1)
