# =============================================================================
# Dagster Service - GraphQL API Operations
# =============================================================================
# Service wrapper for launching ingest runs through the Dagster GraphQL API.
# =============================================================================

from typing import Optional

import httpx

from app.config import get_settings


LAUNCH_RUN_MUTATION = """
mutation LaunchRun(
    $repositoryLocationName: String!
    $repositoryName: String!
    $jobName: String!
    $runConfigData: RunConfigData
    $executionMetadata: ExecutionMetadata
) {
    launchRun(
        executionParams: {
            selector: {
                repositoryLocationName: $repositoryLocationName
                repositoryName: $repositoryName
                pipelineName: $jobName
            }
            runConfigData: $runConfigData
            executionMetadata: $executionMetadata
        }
    ) {
        ... on LaunchRunSuccess { run { runId status } }
        ... on PipelineNotFoundError { message }
        ... on RunConfigValidationInvalid { errors { message } }
        ... on PythonError { message }
    }
}
"""


class DagsterService:
    """Service for Dagster GraphQL operations."""

    def __init__(self) -> None:
        settings = get_settings()
        self._graphql_url = settings.dagster_graphql_url
        self._repository_location = settings.dagster_repository_location
        self._repository_name = settings.dagster_repository_name
        self._ingest_job = settings.dagster_ingest_job

    def _execute_query(self, query: str, variables: Optional[dict] = None) -> dict:
        """Execute a GraphQL query."""
        response = httpx.post(
            self._graphql_url,
            json={"query": query, "variables": variables or {}},
            timeout=30.0,
        )
        response.raise_for_status()
        result = response.json()

        if "errors" in result:
            raise RuntimeError(f"GraphQL error: {result['errors']}")

        return result.get("data", {})

    @staticmethod
    def build_ingest_run_config(key: str, job_id: str, table_name: Optional[str] = None) -> dict:
        """Run config for the process_uploaded_file op."""
        op_config: dict = {"key": key, "job_id": job_id}
        if table_name:
            op_config["table_name"] = table_name
        return {"ops": {"process_uploaded_file": {"config": op_config}}}

    def launch_ingest_run(self, key: str, job_id: str, table_name: Optional[str] = None) -> str:
        """
        Launch ingest_file_job for one uploaded file.

        The job id is attached as a run tag so the run failure sensor can
        find the job record.

        Args:
            key: Object key of the uploaded file
            job_id: Caller-assigned job identifier
            table_name: Optional destination table override

        Returns:
            Dagster run ID

        Raises:
            RuntimeError: If Dagster rejects the launch
            httpx.HTTPError: If Dagster is unreachable
        """
        variables = {
            "repositoryLocationName": self._repository_location,
            "repositoryName": self._repository_name,
            "jobName": self._ingest_job,
            "runConfigData": self.build_ingest_run_config(key, job_id, table_name),
            "executionMetadata": {
                "tags": [
                    {"key": "job_id", "value": job_id},
                    {"key": "file_key", "value": key},
                ]
            },
        }

        data = self._execute_query(LAUNCH_RUN_MUTATION, variables)
        launch_result = data.get("launchRun", {})

        if "run" in launch_result:
            return launch_result["run"]["runId"]

        if "errors" in launch_result:
            messages = "; ".join(e.get("message", "") for e in launch_result["errors"])
            raise RuntimeError(f"Invalid run config: {messages}")

        raise RuntimeError(launch_result.get("message", "Unknown launch error"))


# Singleton instance
_dagster_service: Optional[DagsterService] = None


def get_dagster_service() -> DagsterService:
    """Get or create the Dagster service singleton."""
    global _dagster_service
    if _dagster_service is None:
        _dagster_service = DagsterService()
    return _dagster_service
