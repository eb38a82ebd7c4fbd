"""
Pydantic models for datasets, requests, results, progress events and runs.

Modules
-------
common         : WireModel base (camelCase aliases) + EntityId.
dataset        : Course, Trainee, Enrollment, Dataset.
request        : TraineeFilters, GenerationRequest.
recommendation : SimilarCourse, Recommendation, CurrentCourse, TraineeResult,
                 GenerationResult.
progress       : ProgressStage, ProgressEvent.
statistics     : DatasetStatistics, TraineeSummary, TraineePage, IntegrityReport.
meta           : RunMetadata (mutable audit record).
"""
