"""
Auditable pipeline stages run by the CLI.

Modules:
  base      — PipelineStage ABC; wraps every run in a RunMetadata record
  recommend — RecommendStage: load dataset, stream a run, write outputs
  validate  — ValidateDataStage: load dataset and report integrity problems
"""
