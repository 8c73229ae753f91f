from quicklaunch.search.SearchEngine import SearchEngine, SearchOutcome, generic_filter

__all__ = ['SearchEngine', 'SearchOutcome', 'generic_filter']
