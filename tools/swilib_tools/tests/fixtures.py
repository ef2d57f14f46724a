from __future__ import annotations

SDK_INCLUDE = "/sdk/swilib/include"

SWILIB_HEADER = """# 1 "/sdk/swilib/include/swilib.h"
# 1 "<built-in>"
# 1 "/sdk/swilib/include/swilib.h"
# 1 "/sdk/swilib/include/swilib/base.h" 1
/**
 * @addtogroup Base
 * @{
 */

/**
 * Simple function.
 */
__swi_begin void Foo(int a) __swi_end(0x0000, Foo);

/**
 * Only on NewSGOLD.
 * @platforms ELKA, NSG
 */
__swi_begin void Bar(void) __swi_end(0x0001, Bar);
__swi_begin char *RamBuffer() __swi_end(0x8002, RamBuffer);
__swi_begin int GetValue(void) __swi_end(0x8003, GetValue);

/**
 * Provided by ELFLoader.
 * @builtin ELKA
 */
__swi_begin void Loader(void) __swi_end(0x0004, Loader);

/**
 * @pointer-type FLASH
 */
__swi_begin const char *FlashTable() __swi_end(0x8005, FlashTable);
__swi_begin void Bar_old(void) __swi_end(0x4001, Bar_old);
/** @} */
# 1 "/sdk/swilib/include/swilib/other.h" 1
__swi_begin void *RamPtr() __swi_end(0x8006, RamPtr);
__swi_begin void Foo2(void) __swi_end(0x0006, FooAlias);
typedef int dummy_t;
__swi_begin void Baz(int x) __swi_end(0x0007, Baz);
"""

SWILIB_PATCH = """; C81v51
+A0000000
#pragma enable old_equal_ff

0000: 0xA0123457   ;  0: void Foo(int a)
0004: 0xA0200001   ;  1: void Bar(void)
0008: 0xA8001000   ;  2: char *RamBuffer()
000C: 0x00001234   ;  3: int GetValue(void)
0014: 0xA0300000   ;  5: const char *FlashTable()
0018: 0xA0400001   ;  6: void FooAlias(void)
001C: 0xFFFFFFFF   ;  7: void Baz(int x)

#pragma enable old_equal_ff
+0
"""
