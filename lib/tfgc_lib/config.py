"""
Configuration constants and environment variables for the Terraform garbage collector.
"""

import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Kubernetes CRD configuration
CRD_GROUP = 'tf.isaaguilar.com'
CRD_VERSION = 'v1alpha1'
CRD_TERRAFORM_PLURAL = 'terraforms'

# Logical kind -> plural API resource name
KIND_PLURALS = {
    'Terraform': CRD_TERRAFORM_PLURAL,
}

# Label keys
LABEL_KEEP = 'keep'
LABEL_KIND = 'kind'
LABEL_KIND_TEST = 'test'
LABEL_JOB_RESOURCE_NAME = 'terraforms.tf.isaaguilar.com/resourceName'

# Service account namespace file when running inside a pod
IN_CLUSTER_NAMESPACE_PATH = '/var/run/secrets/kubernetes.io/serviceaccount/namespace'

# Command-line defaults
DEFAULT_NAMESPACE = os.getenv('TFGC_NAMESPACE', '')
DEFAULT_SELECTOR = os.getenv('TFGC_SELECTOR', f'{LABEL_KIND}={LABEL_KIND_TEST}')
DEFAULT_MAX_AGE = os.getenv('TFGC_MAX_AGE', '2h')
KUBECTL_BINARY = os.getenv('TFGC_KUBECTL', 'kubectl')

# Seconds to wait on each Kubernetes call and kubectl invocation (unset = no limit).
# Validated by the command line so a bad value is reported as a usage error.
REQUEST_TIMEOUT = os.getenv('TFGC_REQUEST_TIMEOUT', '')


def kind_for_plural(plural: str) -> str:
    """Look up the Kind registered for a plural resource name."""
    for kind, registered in KIND_PLURALS.items():
        if registered == plural:
            return kind
    raise KeyError(f'no kind registered for resource {plural!r}')
