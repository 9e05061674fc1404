from .parsing import FilterOptions, FilterResult, filter_asm, process_assembly

__all__ = ["FilterOptions", "FilterResult", "filter_asm", "process_assembly"]
