from typing import List, Optional


class E2EException(Exception):
    def pretty_print_str(self):
        err = f"[bold][red]{type(self).__name__}: {str(self)}[/red][/bold]"
        return err


class BadConfigException(E2EException):
    pass


class BoskosException(E2EException):
    """Leasing service request failed. Retryable."""

    def __init__(self, message, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class BoskosReleaseException(BoskosException):
    def __init__(self, message, errors: List[str]):
        super().__init__(message)
        self.errors = errors

    def pretty_print_str(self):
        err = f"[bold][red]BoskosReleaseException: {str(self)}[/red][/bold]"
        for error in self.errors:
            err += f"\n\t* {error}"
        return err


class LeaseCancelledException(E2EException):
    pass


class FatalE2EException(E2EException):
    """The test run cannot proceed. Harness entry points exit the process on these."""

    def pretty_print_str(self):
        err = f"[red][bold]:x: {type(self).__name__}:[/bold] {str(self)}[/red]"
        return err


class LeaseTimeoutException(FatalE2EException):
    def __init__(self, message, resource_type: Optional[str] = None):
        super().__init__(message)
        self.resource_type = resource_type


class CredentialsException(FatalE2EException):
    pass


class ProjectLookupException(FatalE2EException):
    def pretty_print_str(self):
        err = super().pretty_print_str()
        err += "\n[bold][red]Please ensure the project exists and the Cloud Resource Manager API is enabled.[/red][/bold]"
        return err


class RemoteCommandException(E2EException):
    def __init__(self, message, output: Optional[str] = None):
        super().__init__(message)
        self.output = output

    def pretty_print_str(self):
        err = f"[red][bold]:x: RemoteCommandException:[/bold] {str(self)}[/red]"
        if self.output:
            err += f"\n[bright_black]{self.output}[/bright_black]"
        return err
