import pytest

from risottovm.valuetypes import TypeContainer, ValueType
from risottovm.value import (
    Object,
    Ref,
    ValueArray,
    array_value,
    as_array,
    as_bool,
    as_double,
    as_int,
    as_object,
    as_pointer,
    as_str,
    as_uint,
    assign,
    bool_value,
    copy_value,
    deref,
    double_value,
    int_value,
    nil,
    object_value,
    pointer_value,
    ref_value,
    resolve_ref,
    str_value,
    typecheck,
    uint_value,
    values_equal,
)

ARRAY_TC = TypeContainer(ValueType.ARRAY)
OBJECT_TC = TypeContainer(ValueType.OBJECT)


def test_primitive_round_trips():
    assert as_int(int_value(-7)) == -7
    assert as_uint(uint_value(7)) == 7
    assert as_double(double_value(2.5)) == 2.5
    assert as_bool(bool_value(True)) is True
    sentinel = object()
    assert as_pointer(pointer_value(sentinel)) is sentinel


def test_int_value_wraps_to_32_bits():
    assert as_int(int_value(2**31)) == -(2**31)


def test_int_value_truncates_floats():
    assert as_int(int_value(-2.9)) == int(-2.9)


def test_wrong_type_raises():
    with pytest.raises(TypeError):
        as_int(double_value(1.0))
    with pytest.raises(TypeError):
        as_array(object_value(Object.with_size(1), OBJECT_TC))


def test_as_object_accepts_arrays():
    arr = ValueArray()
    assert as_object(array_value(arr, ARRAY_TC)) is arr


def test_as_str_formats():
    assert as_str(nil()) == "nil"
    assert as_str(bool_value(True)) == "true"
    assert as_str(bool_value(False)) == "false"
    assert as_str(double_value(2.0)) == "2.000000"
    assert as_str(int_value(-61)) == "-61"
    assert as_str(str_value("hello")) == "hello"


def test_as_str_array():
    arr = ValueArray([int_value(1), int_value(2)])
    assert as_str(array_value(arr, ARRAY_TC)) == "[1, 2]"


def test_as_str_long_array_is_elided():
    arr = ValueArray([int_value(i) for i in range(11)])
    assert as_str(array_value(arr, ARRAY_TC)) == " <...> ]"


def test_ref_get_and_set():
    slots = [int_value(1), int_value(2)]
    ref = Ref(slots, 1)
    assert ref.get() == int_value(2)
    ref.set(int_value(5))
    assert slots[1] == int_value(5)


def test_ref_equality_uses_container_identity():
    a = [nil()]
    b = [nil()]
    assert Ref(a, 0) == Ref(a, 0)
    assert Ref(a, 0) != Ref(b, 0)
    assert len({Ref(a, 0), Ref(a, 0)}) == 1


def test_deref_follows_chains():
    slots = [int_value(9), nil(), nil()]
    slots[1] = ref_value(Ref(slots, 0))
    slots[2] = ref_value(Ref(slots, 1))
    assert slots[2] is slots[1]
    assert deref(slots[2]) == int_value(9)
    assert resolve_ref(Ref(slots, 2)) == Ref(slots, 0)


def test_assign_writes_through_references():
    slots = [int_value(1), nil()]
    slots[1] = ref_value(Ref(slots, 0))
    source = [int_value(42), nil()]
    source[1] = ref_value(Ref(source, 0))
    assign(source[1], Ref(slots, 1))
    assert slots[0] == int_value(42)
    assert slots[1].type is ValueType.VALUE_P


def test_copy_value_plain_is_identity():
    value = int_value(3)
    assert copy_value(value) is value


def test_copy_value_resolves_reference_and_inner_refs():
    outer = [int_value(5)]
    arr = ValueArray([ref_value(Ref(outer, 0)), int_value(6)])
    holder = [array_value(arr, ARRAY_TC)]
    copied = copy_value(ref_value(Ref(holder, 0)))
    assert as_array(copied) is arr
    assert arr.items == [int_value(5), int_value(6)]


def test_copy_value_object_fields():
    outer = [str_value("x")]
    obj = Object([ref_value(Ref(outer, 0))])
    holder = [object_value(obj, OBJECT_TC)]
    copied = copy_value(ref_value(Ref(holder, 0)))
    assert as_object(copied).values == [str_value("x")]


def test_object_with_size_is_nil_filled():
    obj = Object.with_size(3)
    assert obj.size == 3
    assert all(typecheck(v, ValueType.NIL) for v in obj.values)


def test_typecheck_dereferences():
    slots = [bool_value(True)]
    ref = ref_value(Ref(slots, 0))
    assert typecheck(ref, ValueType.BOOL)
    assert not typecheck(ref, ValueType.VALUE_P)


def test_values_equal_numbers_and_nil():
    assert values_equal(int_value(2), int_value(2))
    assert not values_equal(int_value(1), int_value(2))
    assert values_equal(double_value(2.0), double_value(2.0))
    assert not values_equal(int_value(2), double_value(2.0))
    assert values_equal(nil(), nil())


def test_values_equal_heap_identity():
    arr = ValueArray()
    assert values_equal(array_value(arr, ARRAY_TC), array_value(arr, ARRAY_TC))
    assert not values_equal(array_value(arr, ARRAY_TC), array_value(ValueArray(), ARRAY_TC))


def test_values_equal_strings_report_difference():
    assert values_equal(str_value("a"), str_value("b"))
    assert not values_equal(str_value("a"), str_value("a"))


def test_values_equal_through_references():
    slots = [int_value(4)]
    assert values_equal(ref_value(Ref(slots, 0)), int_value(4))