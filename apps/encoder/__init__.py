"""
EnCodec encoder package
This package contains all modules required to turn an audio file into
EnCodec tokens and audio scales and hand them to the remote decode
service. The pipeline orchestrates a series of stages: normalisation
to 24 kHz mono PCM, tensor preparation, ONNX inference, JSON-safe
serialisation and submission. The decode service itself is not part
of this package; only its HTTP contract is.

To run the pipeline from the command line see `main.py`.
"""
