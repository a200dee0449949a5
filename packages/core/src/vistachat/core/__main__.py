"""CLI 入口模块 -- python -m vistachat.core <command>

支持的命令：
  stats        输出消息存储聚合统计
  verify-tags  用当前规则重新计算 assistant 消息标签，报告与已存储标签不一致的行
"""

import asyncio
import sys

from .config import get_db_path


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print("用法: python -m vistachat.core <command>")
        print("命令:")
        print("  stats        输出消息存储聚合统计")
        print("  verify-tags  校验已存储标签与当前规则是否一致")
        sys.exit(1)

    command = sys.argv[1]

    if command == "stats":
        asyncio.run(show_stats())
    elif command == "verify-tags":
        mismatched = asyncio.run(verify_tags())
        sys.exit(1 if mismatched else 0)
    else:
        print(f"未知命令: {command}")
        print("可用命令: stats, verify-tags")
        sys.exit(1)


async def show_stats() -> None:
    """输出聚合统计"""
    from .store import create_store_group

    store_group = await create_store_group(get_db_path())
    try:
        stats = await store_group.message_store.get_stats()
        for key, value in stats.items():
            print(f"{key}: {value}")
    finally:
        await store_group.close()


async def verify_tags() -> int:
    """重新计算标签并与存储值比较（只读，不改写历史消息）

    Returns:
        不一致的消息数
    """
    from .models.enums import MessageRole
    from .store import create_store_group
    from .tags import extract_tags

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")

    store_group = await create_store_group(db_path)
    mismatched = 0
    checked = 0
    try:
        for message in await store_group.message_store.list_messages():
            if message.role != MessageRole.ASSISTANT or message.meta_tags is None:
                continue
            checked += 1
            recomputed = extract_tags(message.content, message.meta_tags.keywords)
            if recomputed != message.meta_tags:
                mismatched += 1
                print(f"  message #{message.id}: 标签与当前规则不一致")
    finally:
        await store_group.close()

    print(f"检查完成，共 {checked} 条 assistant 消息，{mismatched} 条不一致")
    return mismatched


if __name__ == "__main__":
    main()
