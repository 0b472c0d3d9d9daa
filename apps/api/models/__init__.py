"""Models package."""

from .acquisition_job import AcquisitionJob
from .title_metadata import TitleMetadata
