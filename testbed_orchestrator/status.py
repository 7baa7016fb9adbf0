from typing import List

from .testbed import Testbed


def render_status(testbed: Testbed) -> str:
    """Plain-text summary of the fleet, one block per region in configured order"""
    settings = testbed.settings
    instances = testbed.instances
    key_path = str(settings.ssh_private_key_file)

    lines: List[str] = [
        f"Client: {testbed.client}",
        f"Repo: {settings.repository.url} ({settings.repository.branch})",
        f"Instances ({len(instances)})",
    ]
    for region in settings.regions:
        lines.append("")
        lines.append(region.upper())
        in_region = [x for x in instances if x.region == region and not x.is_terminated()]
        for i, instance in enumerate(in_region):
            marker = "ON " if instance.is_active() else "OFF"
            lines.append(f"  {i:>3} {marker} {instance.ssh_command(testbed.username, key_path)}")
    return "\n".join(lines)
