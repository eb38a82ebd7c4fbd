"""
Recommendation engine.

Modules:
  sanitizer   — drop enrollments referencing unknown courses; integrity report
  similarity  — course-name token similarity index
  filters     — trainee working-set predicates and sampling
  scorer      — probability formula and explanation text
  ranker      — per-trainee candidate ranking; result re-filtering
  enrichment  — optional AI insights on top recommendations
  executor    — chunked run with a progress event stream
"""
