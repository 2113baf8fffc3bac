from .factories import FAST_ITERATIONS, mk_exported_keypair, mk_config, mk_blob, mk_record

__all__ = [
    "FAST_ITERATIONS",
    "mk_exported_keypair",
    "mk_config",
    "mk_blob",
    "mk_record",
]
