"""
Domain taxonomies.

Modules
-------
course_status : CourseStatus enum (1 Created … 5 Archived) + status_label().
"""
