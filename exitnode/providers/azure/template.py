"""ARM template for a single exit-node VM.

One deployment creates the network security group, a /24 virtual network,
a static public IP, the NIC and the VM, and outputs the public IP
address as ``publicIP``.
"""

from __future__ import annotations

from typing import Any

from exitnode.api.model import HostDescriptor
from exitnode.providers.common import control_ports

ADMIN_USERNAME = "inletsuser"
ADDRESS_PREFIX = "10.0.0.0/24"

_NIC = "inlets-vm-nic"
_NSG = "inlets-vm-nsg"
_VNET = "inlets-vnet"
_PUBLIC_IP = "inlets-ip"


def _param(kind: str) -> dict[str, str]:
    return {"type": kind}


def _value(value: Any) -> dict[str, Any]:
    return {"value": value}


def security_rules(host: HostDescriptor) -> list[dict[str, Any]]:
    """Inbound allow rules: SSH plus the tunnel's ports, lowest priority first."""
    names = {22: "SSH", 80: "HTTP", 443: "HTTPS"}
    ports = [22, *control_ports(host.tags)]
    rules = []
    for offset, port in enumerate(ports):
        rules.append({
            "name": names.get(port, f"TCP{port}"),
            "properties": {
                "priority": 300 + offset * 20,
                "protocol": "TCP",
                "access": "Allow",
                "direction": "Inbound",
                "sourceAddressPrefix": "*",
                "sourcePortRange": "*",
                "destinationAddressPrefix": "*",
                "destinationPortRange": str(port),
            },
        })
    return rules


def build_template(host: HostDescriptor) -> dict[str, Any]:
    image = {
        "publisher": host.tag("image_publisher", "Canonical"),
        "offer": host.tag("image_offer", host.os_image),
        "sku": host.tag("image_sku"),
        "version": host.tag("image_version", "latest"),
    }
    return {
        "$schema": "http://schema.management.azure.com/schemas/2015-01-01/deploymentTemplate.json#",
        "contentVersion": "1.0.0.0",
        "parameters": {
            "location": _param("string"),
            "networkInterfaceName": _param("string"),
            "networkSecurityGroupName": _param("string"),
            "networkSecurityGroupRules": _param("array"),
            "subnetName": _param("string"),
            "virtualNetworkName": _param("string"),
            "addressPrefixes": _param("array"),
            "subnets": _param("array"),
            "publicIpAddressName": _param("string"),
            "virtualMachineName": _param("string"),
            "osDiskType": _param("string"),
            "virtualMachineSize": _param("string"),
            "adminUsername": _param("string"),
            "adminPassword": _param("secureString"),
            "customData": _param("string"),
        },
        "variables": {
            "nsgId": "[resourceId(resourceGroup().name, 'Microsoft.Network/networkSecurityGroups', parameters('networkSecurityGroupName'))]",
            "vnetId": "[resourceId(resourceGroup().name,'Microsoft.Network/virtualNetworks', parameters('virtualNetworkName'))]",
            "subnetRef": "[concat(variables('vnetId'), '/subnets/', parameters('subnetName'))]",
        },
        "resources": [
            {
                "name": "[parameters('networkInterfaceName')]",
                "type": "Microsoft.Network/networkInterfaces",
                "apiVersion": "2019-07-01",
                "location": "[parameters('location')]",
                "dependsOn": [
                    "[concat('Microsoft.Network/networkSecurityGroups/', parameters('networkSecurityGroupName'))]",
                    "[concat('Microsoft.Network/virtualNetworks/', parameters('virtualNetworkName'))]",
                    "[concat('Microsoft.Network/publicIpAddresses/', parameters('publicIpAddressName'))]",
                ],
                "properties": {
                    "ipConfigurations": [{
                        "name": "ipconfig1",
                        "properties": {
                            "subnet": {"id": "[variables('subnetRef')]"},
                            "privateIPAllocationMethod": "Dynamic",
                            "publicIpAddress": {
                                "id": "[resourceId(resourceGroup().name, 'Microsoft.Network/publicIpAddresses', parameters('publicIpAddressName'))]",
                            },
                        },
                    }],
                    "networkSecurityGroup": {"id": "[variables('nsgId')]"},
                },
            },
            {
                "name": "[parameters('networkSecurityGroupName')]",
                "type": "Microsoft.Network/networkSecurityGroups",
                "apiVersion": "2019-02-01",
                "location": "[parameters('location')]",
                "properties": {"securityRules": "[parameters('networkSecurityGroupRules')]"},
            },
            {
                "name": "[parameters('virtualNetworkName')]",
                "type": "Microsoft.Network/virtualNetworks",
                "apiVersion": "2019-04-01",
                "location": "[parameters('location')]",
                "properties": {
                    "addressSpace": {"addressPrefixes": "[parameters('addressPrefixes')]"},
                    "subnets": "[parameters('subnets')]",
                },
            },
            {
                "name": "[parameters('publicIpAddressName')]",
                "type": "Microsoft.Network/publicIpAddresses",
                "apiVersion": "2019-02-01",
                "location": "[parameters('location')]",
                "properties": {"publicIpAllocationMethod": "Static"},
                "sku": {"name": "Basic"},
            },
            {
                "name": "[parameters('virtualMachineName')]",
                "type": "Microsoft.Compute/virtualMachines",
                "apiVersion": "2019-07-01",
                "location": "[parameters('location')]",
                "dependsOn": [
                    "[concat('Microsoft.Network/networkInterfaces/', parameters('networkInterfaceName'))]",
                ],
                "properties": {
                    "hardwareProfile": {"vmSize": "[parameters('virtualMachineSize')]"},
                    "storageProfile": {
                        "osDisk": {
                            "createOption": "fromImage",
                            "managedDisk": {"storageAccountType": "[parameters('osDiskType')]"},
                        },
                        "imageReference": image,
                    },
                    "networkProfile": {
                        "networkInterfaces": [{
                            "id": "[resourceId('Microsoft.Network/networkInterfaces', parameters('networkInterfaceName'))]",
                        }],
                    },
                    "osProfile": {
                        "computerName": "[parameters('virtualMachineName')]",
                        "adminUsername": "[parameters('adminUsername')]",
                        "adminPassword": "[parameters('adminPassword')]",
                        "customData": "[base64(parameters('customData'))]",
                    },
                },
            },
        ],
        "outputs": {
            "adminUsername": {"type": "string", "value": "[parameters('adminUsername')]"},
            "publicIP": {
                "type": "string",
                "value": "[reference(resourceId('Microsoft.Network/publicIPAddresses', parameters('publicIpAddressName')), '2019-02-01', 'Full').properties.ipAddress]",
            },
        },
    }


def build_parameters(host: HostDescriptor, admin_password: str) -> dict[str, Any]:
    return {
        "location": _value(host.region),
        "networkInterfaceName": _value(_NIC),
        "networkSecurityGroupName": _value(_NSG),
        "networkSecurityGroupRules": _value(security_rules(host)),
        "subnetName": _value("default"),
        "virtualNetworkName": _value(_VNET),
        "addressPrefixes": _value([ADDRESS_PREFIX]),
        "subnets": _value([{"name": "default", "properties": {"addressPrefix": ADDRESS_PREFIX}}]),
        "publicIpAddressName": _value(_PUBLIC_IP),
        "virtualMachineName": _value(host.name),
        "osDiskType": _value("Standard_LRS"),
        "virtualMachineSize": _value(host.plan),
        "adminUsername": _value(ADMIN_USERNAME),
        "adminPassword": _value(admin_password),
        "customData": _value(host.boot_script),
    }
