from wharf.managers.process.process import ProcessSupervisorClient, validate_process_name

__all__ = ["ProcessSupervisorClient", "validate_process_name"]
