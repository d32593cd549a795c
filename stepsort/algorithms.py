import importlib.util
import logging
import math
import numbers
import os

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# ============================================================
# ===================== SORTING ALGORITHMS ===================
# ============================================================
#
# Every engine takes the unit's primitive set ``ops`` and the list it owns.
# All reads that matter, every comparison, swap and write go through ``ops``;
# the engines are identical whether they sort a whole collection or one
# partition of it.

TIM_RUN = 32


def bubble_sort(ops, arr):
    n = len(arr)
    for i in range(n):
        ops.narrate("iteration", f"Pass {i + 1} of {n}")
        swapped = False
        for j in range(n - i - 1):
            if ops.compare(arr[j], arr[j + 1], (j, j + 1)) > 0:
                ops.swap(arr, j, j + 1)
                swapped = True
        if not swapped:
            break


def selection_sort(ops, arr):
    n = len(arr)
    for i in range(n - 1):
        ops.narrate("iteration", f"Finding the minimum of positions {i}..{n - 1}")
        mi = i
        for j in range(i + 1, n):
            if ops.compare(arr[j], arr[mi], (j, mi)) < 0:
                mi = j
        if mi != i:
            ops.swap(arr, i, mi)


def _insertion(ops, arr, lo, hi):
    for i in range(lo + 1, hi):
        key = ops.access(arr, i)
        ops.narrate("key-selection", f"Selected key {key} at position {i}", (i,), (key,))
        j = i - 1
        # stops at the first element <= key, so equal keys keep their order
        while j >= lo and ops.compare(arr[j], key, (j, j + 1)) > 0:
            ops.write(arr, j + 1, arr[j])
            j -= 1
        ops.write(arr, j + 1, key)


def insertion_sort(ops, arr):
    _insertion(ops, arr, 0, len(arr))


def _merge(ops, arr, left, mid, right):
    ops.narrate("merge", f"Merging {left}..{mid} with {mid + 1}..{right}", (left, right))
    L = [ops.access(arr, k) for k in range(left, mid + 1)]
    R = [ops.access(arr, k) for k in range(mid + 1, right + 1)]
    i = j = 0
    k = left
    while i < len(L) and j < len(R):
        # <= prefers the left run on ties
        if ops.compare(L[i], R[j], (left + i, mid + 1 + j)) <= 0:
            ops.write(arr, k, L[i])
            i += 1
        else:
            ops.write(arr, k, R[j])
            j += 1
        k += 1
    while i < len(L):
        ops.write(arr, k, L[i])
        i += 1
        k += 1
    while j < len(R):
        ops.write(arr, k, R[j])
        j += 1
        k += 1


def _merge_sort(ops, arr, left, right):
    if left >= right:
        return
    ops.narrate("split", f"Splitting {left}..{right}", (left, right))
    mid = (left + right) // 2
    _merge_sort(ops, arr, left, mid)
    _merge_sort(ops, arr, mid + 1, right)
    _merge(ops, arr, left, mid, right)


def merge_sort(ops, arr):
    _merge_sort(ops, arr, 0, len(arr) - 1)


def _partition(ops, arr, low, high):
    pivot = ops.access(arr, high)
    ops.narrate("pivot-selection", f"Pivot {pivot} at position {high}", (high,), (pivot,))
    i = low - 1
    for j in range(low, high):
        if ops.compare(arr[j], pivot, (j, high)) <= 0:
            i += 1
            ops.swap(arr, i, j)
    ops.swap(arr, i + 1, high)
    return i + 1


def quick_sort(ops, arr):
    # explicit stack, same visiting order as the recursive version
    stack = [(0, len(arr) - 1)]
    while stack:
        low, high = stack.pop()
        if low >= high:
            continue
        ops.narrate("partition", f"Partitioning {low}..{high}", (low, high))
        p = _partition(ops, arr, low, high)
        stack.append((p + 1, high))
        stack.append((low, p - 1))


def _heapify(ops, arr, n, i):
    while True:
        largest, l, r = i, 2 * i + 1, 2 * i + 2
        if l < n and ops.compare(arr[l], arr[largest], (l, largest)) > 0:
            largest = l
        if r < n and ops.compare(arr[r], arr[largest], (r, largest)) > 0:
            largest = r
        if largest == i:
            return
        ops.swap(arr, i, largest)
        i = largest


def heap_sort(ops, arr):
    n = len(arr)
    if n < 2:
        return
    ops.narrate("build-heap", "Building max heap")
    for i in range(n // 2 - 1, -1, -1):
        _heapify(ops, arr, n, i)
    for end in range(n - 1, 0, -1):
        ops.narrate("extract-max", f"Moving max {arr[0]} to position {end}", (0, end), (arr[0],))
        ops.swap(arr, 0, end)
        _heapify(ops, arr, end, 0)


def check_radix_input(arr):
    for v in arr:
        if isinstance(v, bool) or not isinstance(v, numbers.Integral) or v < 0:
            raise ConfigurationError(f"radix sort needs non-negative integers, got {v!r}")


def digit_count(max_value) -> int:
    """Base-10 digits of ``max_value``; 0 still needs one pass."""
    if max_value <= 0:
        return 1
    return math.floor(math.log10(max_value)) + 1


def radix_sort(ops, arr, digits=None):
    n = len(arr)
    if n == 0:
        return
    check_radix_input(arr)
    if digits is None:
        top = ops.access(arr, 0)
        for k in range(1, n):
            top = max(top, ops.access(arr, k))
        digits = digit_count(top)

    exp = 1
    for d in range(digits):
        ops.narrate("digit-pass", f"Counting sort on digit {d + 1} of {digits}")
        count = [0] * 10
        for k in range(n):
            count[(ops.access(arr, k) // exp) % 10] += 1
        for b in range(1, 10):
            count[b] += count[b - 1]
        output = [0] * n
        # backwards keeps each pass stable
        for k in range(n - 1, -1, -1):
            value = ops.access(arr, k)
            b = (value // exp) % 10
            count[b] -= 1
            output[count[b]] = value
        for k in range(n):
            ops.write(arr, k, output[k])
        exp *= 10


def tim_sort(ops, arr):
    n = len(arr)
    for start in range(0, n, TIM_RUN):
        end = min(start + TIM_RUN, n)
        ops.narrate("split", f"Insertion sorting run {start}..{end - 1}", (start, end - 1))
        _insertion(ops, arr, start, end)
    size = TIM_RUN
    while size < n:
        for left in range(0, n, 2 * size):
            mid = min(left + size - 1, n - 1)
            right = min(left + 2 * size - 1, n - 1)
            if mid < right:
                _merge(ops, arr, left, mid, right)
        size *= 2


# ============================================================
# ========================= REGISTRY =========================
# ============================================================

ALGORITHMS = [
    ("Bubble Sort",     "bubble"),
    ("Selection Sort",  "selection"),
    ("Insertion Sort",  "insertion"),
    ("Merge Sort",      "merge"),
    ("Quick Sort",      "quick"),
    ("Heap Sort",       "heap"),
    ("LSD Radix Sort",  "radix"),
    ("Tim Sort",        "tim"),
]

# multi_unit: whether the algorithm may be split across several units
ALGORITHM_INFO = {
    "bubble":    dict(stable=True,  multi_unit=False, best="O(n)",       average="O(n^2)",     worst="O(n^2)"),
    "selection": dict(stable=False, multi_unit=False, best="O(n^2)",     average="O(n^2)",     worst="O(n^2)"),
    "insertion": dict(stable=True,  multi_unit=False, best="O(n)",       average="O(n^2)",     worst="O(n^2)"),
    "merge":     dict(stable=True,  multi_unit=True,  best="O(n log n)", average="O(n log n)", worst="O(n log n)"),
    "quick":     dict(stable=False, multi_unit=True,  best="O(n log n)", average="O(n log n)", worst="O(n^2)"),
    "heap":      dict(stable=False, multi_unit=False, best="O(n log n)", average="O(n log n)", worst="O(n log n)"),
    "radix":     dict(stable=True,  multi_unit=True,  best="O(nk)",      average="O(nk)",      worst="O(nk)"),
    "tim":       dict(stable=True,  multi_unit=True,  best="O(n)",       average="O(n log n)", worst="O(n log n)"),
}

_SORTERS = {
    "bubble":    bubble_sort,
    "selection": selection_sort,
    "insertion": insertion_sort,
    "merge":     merge_sort,
    "quick":     quick_sort,
    "heap":      heap_sort,
    "radix":     radix_sort,
    "tim":       tim_sort,
}

_custom_sorters: dict = {}


def get_algorithm(key):
    if key in _SORTERS:
        return _SORTERS[key]
    if key in _custom_sorters:
        return _custom_sorters[key]["fn"]
    raise ConfigurationError(f"Unknown algorithm: {key}")


def algorithm_name(key) -> str:
    for name, k in ALGORITHMS:
        if k == key:
            return name
    return key


def register_algorithm(key, fn, name=None, stable=False, path=None):
    """Add ``fn(ops, arr)`` under ``key``; built-in keys cannot be replaced."""
    if key in _SORTERS:
        raise ConfigurationError(f"cannot replace built-in algorithm {key!r}")
    if not callable(fn):
        raise ConfigurationError(f"sorter for {key!r} is not callable")
    entry = {"fn": fn, "stable": stable}
    if path:
        entry["path"] = path
    _custom_sorters[key] = entry
    ALGORITHM_INFO[key] = dict(stable=stable, multi_unit=False, best="?", average="?", worst="?")
    if not any(k == key for _, k in ALGORITHMS):
        ALGORITHMS.append((name or key, key))
    return key


def unregister_algorithm(key):
    if _custom_sorters.pop(key, None) is not None:
        ALGORITHMS[:] = [(n, k) for n, k in ALGORITHMS if k != key]
        ALGORITHM_INFO.pop(key, None)


def load_custom_sorter(filepath: str):
    """
    Load a .py file as a custom sorter.
    Must define: NAME (str, optional) and sort(ops, arr) using the primitives.
    Returns ((display_name, key), None) on success, (None, error_str) on failure.
    """
    try:
        filepath = os.path.abspath(filepath)
        spec   = importlib.util.spec_from_file_location("_stepsort_custom", filepath)
        if spec is None:
            return None, f"Not a Python module: {filepath}"
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
    except Exception as e:
        return None, str(e)
    if not hasattr(module, "sort"):
        return None, "No sort(ops, arr) function found"
    name = getattr(module, "NAME", os.path.splitext(os.path.basename(filepath))[0])
    n = len(_custom_sorters)
    while f"custom_{n}" in _custom_sorters:
        n += 1
    key  = f"custom_{n}"
    register_algorithm(key, module.sort, name=name, stable=getattr(module, "STABLE", False),
                       path=filepath)
    return (name, key), None


def autoload_custom_sorters(paths) -> list:
    """Load every listed sorter file; missing or broken ones are logged and skipped."""
    loaded = []
    for path in paths:
        if not os.path.exists(path):
            logger.warning("custom sorter not found: %s", path)
            continue
        result, err = load_custom_sorter(path)
        if result:
            loaded.append(result)
        else:
            logger.warning("cannot load custom sorter %s: %s", path, err)
    return loaded
