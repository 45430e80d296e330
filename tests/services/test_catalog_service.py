import pytest

from gymsched.core.exceptions import ConflictError, NotFoundError
from gymsched.schemas.catalog import ClassTypeCreate, ClassTypeUpdate, GymClassCreate, GymClassUpdate
from gymsched.services.catalog import class_type_service, gym_class_service
from tests.conftest import MEMBER_USER_IDS, OTHER_TRAINER_ID, TRAINER_ID


class TestClassTypes:

    @pytest.mark.asyncio
    async def test_duplicate_name_is_rejected(self, db, seed):
        with pytest.raises(ConflictError):
            await class_type_service.create_class_type(db, ClassTypeCreate(name="Yoga", duration=45))

    @pytest.mark.asyncio
    async def test_rename_to_an_existing_name(self, db, seed):
        spinning = await class_type_service.create_class_type(db, ClassTypeCreate(name="Spinning", duration=45))
        with pytest.raises(ConflictError):
            await class_type_service.update_class_type(db, spinning.id, ClassTypeUpdate(name="Yoga"))

        renamed = await class_type_service.update_class_type(db, spinning.id, ClassTypeUpdate(name="Indoor Cycling"))
        assert renamed.name == "Indoor Cycling"
        assert renamed.duration == 45

    @pytest.mark.asyncio
    async def test_delete_without_schedules_cascades_to_classes(self, db, seed):
        pilates = await class_type_service.create_class_type(
            db, ClassTypeCreate(name="Pilates", duration=50, max_participants=8)
        )
        mat = await gym_class_service.create_class(
            db, GymClassCreate(class_type_id=pilates.id, name="Pilates Mat")
        )

        result = await class_type_service.delete_class_type(db, pilates.id)

        assert result.deleted is True
        with pytest.raises(NotFoundError):
            await class_type_service.get_class_type(db, pilates.id)
        with pytest.raises(NotFoundError):
            await gym_class_service.get_class(db, mat.id)

    @pytest.mark.asyncio
    async def test_delete_with_schedules_deactivates(self, db, seed, make_schedule):
        await make_schedule("10:00", "11:00")

        result = await class_type_service.delete_class_type(db, seed["class_type"].id)

        assert result.deleted is False
        class_type = await class_type_service.get_class_type(db, seed["class_type"].id)
        assert class_type.is_active is False
        assert await class_type_service.list_class_types(db) == []
        assert await gym_class_service.list_classes(db) == []
        assert len(await gym_class_service.list_classes(db, active_only=False)) == 2


class TestGymClasses:

    @pytest.mark.asyncio
    async def test_defaults_come_from_the_class_type(self, db, seed):
        gym_class = await gym_class_service.create_class(
            db, GymClassCreate(class_type_id=seed["class_type"].id, name="Yoga Nidra", trainer_id=TRAINER_ID)
        )
        assert gym_class.duration == 60
        assert gym_class.max_participants == 10
        assert gym_class.is_active is True

    @pytest.mark.asyncio
    async def test_unknown_class_type_or_trainer(self, db, seed):
        with pytest.raises(NotFoundError):
            await gym_class_service.create_class(db, GymClassCreate(class_type_id=999, name="Nada"))
        with pytest.raises(NotFoundError):
            await gym_class_service.create_class(
                db,
                GymClassCreate(class_type_id=seed["class_type"].id, name="Yoga", trainer_id=MEMBER_USER_IDS[0]),
            )

    @pytest.mark.asyncio
    async def test_update_checks_the_new_trainer(self, db, seed):
        class_id = seed["free_class"].id
        with pytest.raises(NotFoundError):
            await gym_class_service.update_class(db, class_id, GymClassUpdate(trainer_id=4242))

        updated = await gym_class_service.update_class(db, class_id, GymClassUpdate(trainer_id=OTHER_TRAINER_ID))
        assert updated.trainer_id == OTHER_TRAINER_ID

    @pytest.mark.asyncio
    async def test_delete_class(self, db, seed, make_schedule):
        await make_schedule("10:00", "11:00")

        kept = await gym_class_service.delete_class(db, seed["free_class"].id)
        removed = await gym_class_service.delete_class(db, seed["paid_class"].id)

        assert kept.deleted is False
        assert (await gym_class_service.get_class(db, seed["free_class"].id)).is_active is False
        assert removed.deleted is True
        with pytest.raises(NotFoundError):
            await gym_class_service.get_class(db, seed["paid_class"].id)

    @pytest.mark.asyncio
    async def test_filter_by_trainer(self, db, seed):
        assert len(await gym_class_service.list_classes(db, trainer_id=TRAINER_ID)) == 2
        assert await gym_class_service.list_classes(db, trainer_id=OTHER_TRAINER_ID) == []
