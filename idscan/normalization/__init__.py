from idscan.normalization.field_normalizer import FieldNormalizer, MergeAdvice

__all__ = ["FieldNormalizer", "MergeAdvice"]
