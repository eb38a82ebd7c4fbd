"""
course_recommender.reporting — output files and terminal formatting.

Modules:
  export     — CSV/JSON writers and flatteners for recommendation and
               prospect listings (one flat row per record).
  formatters — progress lines, SSE frames and ASCII tables for the CLI.
"""
