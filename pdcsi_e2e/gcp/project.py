from pdcsi_e2e.exceptions import CredentialsException, ProjectLookupException
from pdcsi_e2e.utils import imports, logger

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"


@imports.inject("google.auth", pip_package="google-auth")
def get_default_credentials(google_auth, scopes=(CLOUD_PLATFORM_SCOPE,)):
    try:
        credentials, inferred_project = google_auth.default(scopes=list(scopes))
    except google_auth.exceptions.DefaultCredentialsError as e:
        raise CredentialsException(f"Failed to get Google Default Client: {e}") from e
    logger.debug(f"Loaded application default credentials (inferred project {inferred_project})")
    return credentials


@imports.inject("googleapiclient.discovery", pip_package="google-api-python-client")
def get_resource_manager_client(discovery, credentials=None):
    if credentials is None:
        credentials = get_default_credentials()
    try:
        return discovery.build("cloudresourcemanager", "v1", credentials=credentials, cache_discovery=False)
    except Exception as e:
        raise CredentialsException(f"Failed to create new cloudresourcemanager: {e}") from e


def default_compute_service_account(project_number) -> str:
    # [PROJECT_NUMBER]-compute@developer.gserviceaccount.com
    return f"{project_number}-compute@developer.gserviceaccount.com"


def get_project_number(project: str, client=None) -> str:
    client = client or get_resource_manager_client()
    try:
        resp = client.projects().get(projectId=project).execute()
    except Exception as e:
        raise ProjectLookupException(f"Failed to get project {project} from Cloud Resource Manager: {e}") from e
    if "projectNumber" not in resp:
        raise ProjectLookupException(f"Project {project} has no project number: {resp}")
    return resp["projectNumber"]


def get_default_service_account(project: str, client=None) -> str:
    """Default Compute Engine service account of project."""
    return default_compute_service_account(get_project_number(project, client=client))
