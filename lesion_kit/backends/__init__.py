"""
Inference runtime adapters.

Each backend exposes `infer(blob) -> ndarray` and, where the runtime knows it,
`output_shape` for the startup class-count check. Importing this package does
not import any runtime.
"""
