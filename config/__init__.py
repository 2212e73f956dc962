from config.settings import Settings, get_settings

# HR integration responses nest the record list under this path
HR_LIST_PATH = ("root", "EmployeeMaster", "EmployeeMasterData")
NO_ANSWER = "(no answer)"

__all__ = ["Settings", "get_settings", "HR_LIST_PATH", "NO_ANSWER"]
