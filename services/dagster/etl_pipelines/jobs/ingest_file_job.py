"""Uploaded file ingestion job (CSV / Excel → destination table)."""

from dagster import job

from ..ops.ingest_ops import process_uploaded_file


@job(
    name="ingest_file_job",
    description="Load an uploaded CSV/Excel file into a Postgres table. Downloads from the uploads bucket, infers the schema, creates the table if absent and inserts rows in batches, reporting job status to MongoDB.",
    tags={"pipeline": "file_ingest"},
)
def ingest_file_job():
    """
    File ingestion pipeline.

    Single op: the file is streamed through parsing, batching and loading in
    one process so memory stays bounded by the batch size. The file key and
    job id come from run_config (set by the webapp trigger).
    """
    process_uploaded_file()
