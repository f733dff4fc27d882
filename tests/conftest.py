import os
import pytest
from t2k.MODELS.topology import TopologySpec

EXAMPLES_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "examples", "airflow")


@pytest.fixture
def airflow_dir():
    return EXAMPLES_DIR


@pytest.fixture
def base_spec():
    """A small Celery deployment: database, broker, worker and webserver."""
    return TopologySpec.model_validate({
        'name': 'airflow',
        'namespace': 'airflow',
        'secrets': {
            'airflow-secrets': {'keys': ['FERNET_KEY', 'SQL_ALCHEMY_CONN']},
        },
        'config_maps': {
            'airflow-config': {'data': {'AIRFLOW__CORE__EXECUTOR': 'CeleryExecutor'}},
        },
        'storage': {
            'postgres-data': {'size': '10Gi'},
            'airflow-logs': {'size': '5Gi', 'access_mode': 'ReadWriteMany'},
        },
        'services': {
            'postgres': {
                'image': 'postgres:15',
                'volumes': [{'claim': 'postgres-data', 'mount_path': '/var/lib/postgresql/data'}],
                'ports': [5432],
            },
            'redis': {'image': 'redis:7', 'ports': [6379]},
            'worker': {
                'image': 'apache/airflow:2.9.3',
                'args': ['celery', 'worker'],
                'replicas': 1,
                'depends_on': ['postgres', 'redis'],
                'env': {
                    'AIRFLOW__CORE__EXECUTOR': {'config_map': 'airflow-config'},
                    'AIRFLOW__CORE__FERNET_KEY': {'secret': 'airflow-secrets', 'key': 'FERNET_KEY'},
                    'DUMB_INIT_SETSID': '0',
                },
                'volumes': [{'claim': 'airflow-logs', 'mount_path': '/opt/airflow/logs'}],
                'resources': {
                    'requests': {'cpu': '500m', 'memory': '1Gi'},
                    'limits': {'cpu': 2, 'memory': '4Gi'},
                },
            },
            'webserver': {
                'image': 'apache/airflow:2.9.3',
                'args': ['webserver'],
                'env': {
                    'AIRFLOW__DATABASE__SQL_ALCHEMY_CONN': {'secret': 'airflow-secrets', 'key': 'SQL_ALCHEMY_CONN'},
                },
                'volumes': [{'claim': 'airflow-logs', 'mount_path': '/opt/airflow/logs'}],
                'ports': [{'port': 80, 'target_port': 8080, 'name': 'http'}],
            },
        },
    })
