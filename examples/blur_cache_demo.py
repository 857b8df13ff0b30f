"""
Performance demonstration for the blur cache.

Paints a series of brush strokes on a large image and renders after each
one, first through the cached compositor (partial re-masking of dirty
regions), then by rebuilding the blurred layer from scratch every frame.
Run this script to see the difference on your system.

Try the SciPy backend as well:
    python examples/blur_cache_demo.py scipy
"""

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import time
from PIL import Image

from BR_Libs.constants import BLUR_BACKEND_PIL
from BR_Libs.ImageEditingLib import EditEngine


def make_source(size):
    """Gradient test image so the blur has something to smear."""
    image = Image.new("RGBA", (size, size))
    pixels = image.load()
    for x in range(size):
        for y in range(0, size, 4):
            value = (x * 7 + y * 3) % 256
            for dy in range(4):
                if y + dy < size:
                    pixels[x, y + dy] = (value, 255 - value, (x + y) % 256, 255)
    return image


def benchmark_strokes(size, strokes, backend=BLUR_BACKEND_PIL, intensity=15.0, passes=5):
    """Time cached rendering against full recomputation."""
    print(f"\nBenchmarking {size}x{size} image, {strokes} strokes, backend={backend}")
    print("-" * 60)

    source = make_source(size)
    engine = EditEngine(blur_backend=backend)
    engine.load_source(source)
    viewport = Image.new("RGBA", (800, 600))

    start = time.time()
    for i in range(strokes):
        y = 20 + i * (size - 40) // max(1, strokes)
        engine.paint_stroke(20, y, size - 20, y + 10, 15)
        engine.render(viewport, intensity, passes)
    cached = time.time() - start
    compositor = engine.compositor
    print(f"  Cached:    {cached:.3f}s "
          f"(blurs: {compositor.blur_count}, layer updates: {compositor.recompute_count})")

    start = time.time()
    for _ in range(strokes):
        compositor.compose_layer(engine.source, engine.committed_mask, intensity, passes)
    uncached = time.time() - start
    print(f"  Uncached:  {uncached:.3f}s ({strokes} full blurs)")

    if cached < uncached:
        print(f"\n✓ Speedup: {uncached / cached:.2f}x faster with the cache")
    else:
        print("\n⚠ No speedup measured")

    return cached, uncached


def main():
    """Run cache benchmarks."""
    backend = sys.argv[1] if len(sys.argv) > 1 else BLUR_BACKEND_PIL

    print("=" * 60)
    print("Blur Cache Performance Demonstration")
    print("=" * 60)

    test_cases = [
        (400, 10),
        (800, 10),
        (1600, 10),
    ]

    results = []
    for size, strokes in test_cases:
        try:
            cached, uncached = benchmark_strokes(size, strokes, backend)
            results.append((size, strokes, cached, uncached))
        except KeyboardInterrupt:
            print("\n\nBenchmark interrupted by user")
            break

    print("\n" + "=" * 60)
    print("Summary")
    print("=" * 60)
    print("\nSize        Strokes  Cached    Uncached  Speedup")
    print("-" * 60)
    for size, strokes, cached, uncached in results:
        speedup = uncached / cached if cached > 0 else 1.0
        print(f"{size:4d}x{size:<4d}  {strokes:5d}    {cached:6.3f}s  {uncached:6.3f}s  {speedup:5.2f}x")

    print("\n" + "=" * 60)


if __name__ == "__main__":
    main()
