import shlex
import unittest
import uuid

from illumos_zfs.errors import DatasetNotFoundError, DatasetValidationError
from illumos_zfs.models.dataset import Dataset
from illumos_zfs.services.resource import DatasetResource
from illumos_zfs.services.zfs import DatasetService
from illumos_zfs.tests.fakes import FakeSessionManager


class DatasetResourceTests(unittest.TestCase):
    def setUp(self):
        self.sessions = FakeSessionManager()
        self.host = self.sessions.host
        self.resource = DatasetResource(DatasetService(self.sessions))

    def test_lifecycle_scenario(self):
        """Create tank/data1, raise its quota, then delete it."""
        created = self.resource.create(Dataset(name="tank/data1", compression="gzip", quota="5G"))

        self.assertIsNotNone(created.id)
        self.assertEqual(created.to_mapping(), {
            "uuid": str(created.id),
            "name": "tank/data1",
            "compression": "gzip",
            "quota": "5G",
        })

        desired = created.model_copy(update={"quota": "10G"})
        updated = self.resource.update(created, desired)

        self.assertEqual(updated.id, created.id)
        self.assertEqual(updated.quota, "10G")
        self.assertEqual(updated.compression, "gzip")

        self.resource.delete(updated)
        with self.assertRaises(DatasetNotFoundError):
            self.resource.read(created.id)

    def test_read_accepts_string_identifier(self):
        created = self.resource.create(Dataset(name="tank/data1"))

        self.assertEqual(self.resource.read(str(created.id)), created)

    def test_read_rejects_invalid_identifier(self):
        with self.assertRaises(DatasetValidationError):
            self.resource.read("not-a-uuid")

        self.assertEqual(self.host.commands, [])

    def test_update_without_changes_skips_zfs_set(self):
        created = self.resource.create(Dataset(name="tank/data1", compression="lz4"))

        self.resource.update(created, created.model_copy())

        verbs = [shlex.split(command)[1] for command in self.host.commands]
        self.assertNotIn("set", verbs)

    def test_update_sends_each_changed_property(self):
        created = self.resource.create(Dataset(name="tank/data1", compression="gzip", quota="5G"))
        desired = created.model_copy(update={"compression": "lz4", "quota": "20G"})

        self.resource.update(created, desired)

        set_command = [c for c in self.host.commands if shlex.split(c)[1] == "set"][0]
        self.assertEqual(
            shlex.split(set_command),
            ["zfs", "set", "compression=lz4", "quota=20G", "tank/data1"],
        )

    def test_update_from_mapping_leaves_unset_property_alone(self):
        """An unset compression in the configuration is not sent as an empty value."""
        created = self.resource.create(Dataset(name="tank/data1", quota="5G"))
        desired = Dataset.from_mapping({"uuid": str(created.id), "name": "tank/data1", "quota": "10G"})

        updated = self.resource.update(created, desired)

        self.assertEqual(updated.quota, "10G")
        self.assertEqual(updated.compression, "off")
        set_command = [c for c in self.host.commands if shlex.split(c)[1] == "set"][0]
        self.assertEqual(shlex.split(set_command), ["zfs", "set", "quota=10G", "tank/data1"])

    def test_changed_properties_skips_empty_desired_values(self):
        current = Dataset(name="tank/data1", compression="off", quota="none")
        desired = Dataset(name="tank/data1")

        self.assertEqual(self.resource.changed_properties(current, desired), [])

    def test_changed_properties_fragments(self):
        current = Dataset(name="tank/data1", compression="gzip", quota="5G")
        desired = Dataset(name="tank/data1", compression="gzip", quota="10G")

        self.assertEqual(self.resource.changed_properties(current, desired), ['quota="10G"'])

    def test_rename_is_rejected(self):
        current = Dataset(id=uuid.uuid4(), name="tank/data1")

        with self.assertRaises(DatasetValidationError):
            self.resource.update(current, Dataset(name="tank/data2"))

        self.assertEqual(self.host.commands, [])

    def test_update_requires_identifier(self):
        with self.assertRaises(DatasetValidationError):
            self.resource.update(Dataset(name="tank/data1"), Dataset(name="tank/data1", quota="1G"))


class DatasetModelTests(unittest.TestCase):
    def test_from_mapping_round_trip(self):
        data = {
            "uuid": "2f1b7a4e-3c9d-4e4b-9a57-0e6f5c2d8b11",
            "name": "tank/data1",
            "compression": "gzip",
            "quota": "5G",
        }

        dataset = Dataset.from_mapping(data)

        self.assertEqual(dataset.id, uuid.UUID(data["uuid"]))
        self.assertEqual(dataset.to_mapping(), data)

    def test_from_mapping_without_uuid(self):
        dataset = Dataset.from_mapping({"name": "tank/new", "compression": None})

        self.assertIsNone(dataset.id)
        self.assertEqual(dataset.compression, "")
        self.assertEqual(dataset.to_mapping()["uuid"], "")

    def test_from_mapping_invalid_uuid(self):
        with self.assertRaises(DatasetValidationError):
            Dataset.from_mapping({"uuid": "nope", "name": "tank/data1"})

    def test_json_uses_uuid_key(self):
        dataset_id = uuid.uuid4()
        dataset = Dataset.model_validate_json(
            f'{{"name": "tank/data1", "uuid": "{dataset_id}", "compression": "lz4", "quota": "none"}}'
        )

        self.assertEqual(dataset.id, dataset_id)
        self.assertIn('"uuid"', dataset.model_dump_json(by_alias=True))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
