from school_directory.models.school import School  # noqa: F401
