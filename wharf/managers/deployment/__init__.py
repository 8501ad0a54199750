from wharf.managers.deployment.deployment import DeploymentPipeline

__all__ = ["DeploymentPipeline"]
