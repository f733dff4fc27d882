import pytest
from t2k.RUNNERS.graph_renderer import GraphRenderer
from t2k.MODELS.topology import TopologySpec
from t2k.MODELS.infra_object import ObjectKind, Layer
from t2k.exceptions import CyclicDependencyError


def keys(objects):
    return [obj.key for obj in objects]


class TestGraphRenderer:
    """Tests for GraphRenderer."""

    def test_render_order(self, base_spec):
        objects = GraphRenderer().render(base_spec)
        assert keys(objects) == [
            'Secret/airflow-secrets',
            'ConfigMap/airflow-config',
            'PersistentVolumeClaim/postgres-data',
            'PersistentVolumeClaim/airflow-logs',
            'Deployment/postgres',
            'Deployment/redis',
            'Deployment/worker',
            'Deployment/webserver',
            'Service/postgres',
            'Service/redis',
            'Service/webserver',
        ]

    def test_storage_precedes_services_mounting_it(self, base_spec):
        objects = GraphRenderer().render(base_spec)
        position = {obj.key: i for i, obj in enumerate(objects)}
        for svc in base_spec.services.values():
            for claim in svc.claim_names:
                assert position[f'PersistentVolumeClaim/{claim}'] < position[f'Deployment/{svc.name}']

    def test_every_dependency_rendered_first(self, base_spec):
        seen = set()
        for obj in GraphRenderer().render(base_spec):
            assert set(obj.depends_on) <= seen
            seen.add(obj.key)

    def test_workload_dependencies(self, base_spec):
        objects = {obj.key: obj for obj in GraphRenderer().render(base_spec)}
        assert objects['Deployment/worker'].depends_on == [
            'PersistentVolumeClaim/airflow-logs',
            'ConfigMap/airflow-config',
            'Secret/airflow-secrets',
            'Deployment/postgres',
            'Deployment/redis',
        ]
        assert objects['Service/webserver'].depends_on == ['Deployment/webserver']
        assert objects['Service/webserver'].layer == Layer.NETWORK

    def test_unexposed_service_has_no_endpoint(self, base_spec):
        objects = GraphRenderer().render(base_spec)
        assert 'Service/worker' not in keys(objects)

    def test_deterministic(self, base_spec):
        assert GraphRenderer().render(base_spec) == GraphRenderer().render(base_spec)

    def test_external_secret_not_rendered(self):
        spec = TopologySpec.model_validate({
            'secrets': {'pg': {'keys': ['POSTGRES_PASSWORD'], 'external': True}},
            'services': {'postgres': {'image': 'postgres', 'env': {'POSTGRES_PASSWORD': {'secret': 'pg'}}}},
        })
        objects = GraphRenderer().render(spec)
        assert keys(objects) == ['Deployment/postgres']
        assert objects[0].depends_on == []

    def test_job_workload(self):
        spec = TopologySpec.model_validate({'services': {
            'postgres': {'image': 'postgres'},
            'airflow-init': {'image': 'airflow', 'kind': 'Job', 'command': ['airflow', 'db', 'migrate'],
                             'depends_on': ['postgres']},
            'scheduler': {'image': 'airflow', 'depends_on': ['airflow-init']},
        }})
        objects = GraphRenderer().render(spec)
        assert keys(objects) == ['Deployment/postgres', 'Job/airflow-init', 'Deployment/scheduler']
        job = objects[1]
        assert job.kind == ObjectKind.JOB
        assert job.manifest['apiVersion'] == 'batch/v1'
        assert job.manifest['spec']['template']['spec']['restartPolicy'] == 'OnFailure'
        assert objects[2].depends_on == ['Job/airflow-init']

    def test_depends_on_reorders_workloads(self):
        spec = TopologySpec.model_validate({'services': {
            'webserver': {'image': 'airflow', 'depends_on': ['postgres']},
            'postgres': {'image': 'postgres'},
        }})
        assert keys(GraphRenderer().render(spec)) == ['Deployment/postgres', 'Deployment/webserver']

    def test_cycle(self):
        spec = TopologySpec.model_validate({'services': {
            'scheduler': {'image': 'airflow', 'depends_on': ['worker']},
            'worker': {'image': 'airflow', 'depends_on': ['scheduler']},
        }})
        with pytest.raises(CyclicDependencyError) as exc:
            GraphRenderer().render(spec)
        assert exc.value.name == 'scheduler'
        assert exc.value.cycle == ['Deployment/scheduler', 'Deployment/worker', 'Deployment/scheduler']

    def test_undeclared_references_skipped(self):
        spec = TopologySpec.model_validate({'services': {'worker': {
            'image': 'airflow',
            'depends_on': ['ghost'],
            'env': {'A': {'secret': 'missing'}},
            'volumes': [{'claim': 'missing', 'mount_path': '/data'}],
        }}})
        objects = GraphRenderer().render(spec)
        assert keys(objects) == ['Deployment/worker']
        assert objects[0].depends_on == []


class TestManifests:
    """Tests for the rendered Kubernetes bodies."""

    def _by_key(self, spec):
        return {obj.key: obj.manifest for obj in GraphRenderer().render(spec)}

    def test_deployment(self, base_spec):
        manifest = self._by_key(base_spec)['Deployment/worker']
        assert manifest['apiVersion'] == 'apps/v1'
        assert manifest['metadata']['name'] == 'worker'
        assert manifest['metadata']['namespace'] == 'airflow'
        assert manifest['metadata']['labels']['app.kubernetes.io/part-of'] == 'airflow'
        assert manifest['spec']['replicas'] == 1
        assert manifest['spec']['selector'] == {'matchLabels': {'app': 'worker'}}

        pod = manifest['spec']['template']['spec']
        container = pod['containers'][0]
        assert container['image'] == 'apache/airflow:2.9.3'
        assert container['args'] == ['celery', 'worker']
        assert container['env'] == [
            {'name': 'AIRFLOW__CORE__EXECUTOR',
             'valueFrom': {'configMapKeyRef': {'name': 'airflow-config', 'key': 'AIRFLOW__CORE__EXECUTOR'}}},
            {'name': 'AIRFLOW__CORE__FERNET_KEY',
             'valueFrom': {'secretKeyRef': {'name': 'airflow-secrets', 'key': 'FERNET_KEY'}}},
            {'name': 'DUMB_INIT_SETSID', 'value': '0'},
        ]
        assert container['resources'] == {
            'requests': {'cpu': '500m', 'memory': '1Gi'},
            'limits': {'cpu': '2', 'memory': '4Gi'},
        }
        assert container['volumeMounts'] == [{'name': 'airflow-logs', 'mountPath': '/opt/airflow/logs'}]
        assert pod['volumes'] == [{'name': 'airflow-logs', 'persistentVolumeClaim': {'claimName': 'airflow-logs'}}]

    def test_endpoint(self, base_spec):
        manifest = self._by_key(base_spec)['Service/webserver']
        assert manifest['apiVersion'] == 'v1'
        assert manifest['spec']['selector'] == {'app': 'webserver'}
        assert manifest['spec']['ports'] == [{'port': 80, 'targetPort': 8080, 'name': 'http'}]

        deployment = self._by_key(base_spec)['Deployment/webserver']
        container = deployment['spec']['template']['spec']['containers'][0]
        assert container['ports'] == [{'containerPort': 8080, 'name': 'http'}]

    def test_claim(self, base_spec):
        manifest = self._by_key(base_spec)['PersistentVolumeClaim/airflow-logs']
        assert manifest['spec'] == {
            'accessModes': ['ReadWriteMany'],
            'resources': {'requests': {'storage': '5Gi'}},
        }

    def test_secret_and_config_map(self):
        spec = TopologySpec.model_validate({
            'secrets': {'s': {'keys': ['A', 'B'], 'values': {'A': 'x'}}},
            'config_maps': {'c': {'data': {'K': 'v'}}},
        })
        manifests = self._by_key(spec)
        assert manifests['Secret/s']['stringData'] == {'A': 'x', 'B': ''}
        assert manifests['Secret/s']['type'] == 'Opaque'
        assert manifests['ConfigMap/c']['data'] == {'K': 'v'}
        assert 'namespace' not in manifests['ConfigMap/c']['metadata']
