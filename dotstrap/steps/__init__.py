from .step_10_resolve import ResolveComponentsStep
from .step_20_conflicts import DetectConflictsStep
from .step_30_install_packages import InstallPackagesStep
from .step_40_deploy_configs import DeployConfigsStep
from .step_50_enable_services import EnableServicesStep

__all__ = [
    "ResolveComponentsStep",
    "DetectConflictsStep",
    "InstallPackagesStep",
    "DeployConfigsStep",
    "EnableServicesStep",
]
