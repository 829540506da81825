"""
依赖注入容器

按声明的依赖顺序创建组件，检测循环依赖。
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


class DependencyScope(Enum):
    """依赖项作用域"""
    SINGLETON = "singleton"
    TRANSIENT = "transient"


@dataclass
class DependencyRegistration:
    """依赖项注册信息"""
    factory: Callable[..., Any]
    scope: DependencyScope
    dependencies: List[str] = field(default_factory=list)
    instance: Optional[Any] = None
    initialized: bool = False


class DependencyContainer:
    """
    依赖注入容器

    工厂函数以关键字参数接收其依赖项，参数名即依赖项名称。
    """

    def __init__(self):
        self.logger = logging.getLogger("melodybot.core.dependency")
        self._registrations: Dict[str, DependencyRegistration] = {}
        self._resolving: set = set()

    def register_singleton(
        self,
        name: str,
        factory: Callable[..., Any],
        dependencies: Optional[List[str]] = None
    ) -> None:
        """
        注册单例依赖项

        Args:
            name: 依赖项名称
            factory: 创建实例的工厂函数
            dependencies: 依赖的其他组件名称列表
        """
        self._register(name, factory, DependencyScope.SINGLETON, dependencies or [])

    def register_transient(
        self,
        name: str,
        factory: Callable[..., Any],
        dependencies: Optional[List[str]] = None
    ) -> None:
        """注册瞬态依赖项（每次解析创建新实例）"""
        self._register(name, factory, DependencyScope.TRANSIENT, dependencies or [])

    def register_instance(self, name: str, instance: Any) -> None:
        """注册已经创建好的实例"""
        self._register(name, lambda: instance, DependencyScope.SINGLETON, [])
        registration = self._registrations[name]
        registration.instance = instance
        registration.initialized = True

    def _register(
        self,
        name: str,
        factory: Callable[..., Any],
        scope: DependencyScope,
        dependencies: List[str]
    ) -> None:
        if name in self._registrations:
            raise ValueError(f"依赖项 '{name}' 已经注册")

        self._registrations[name] = DependencyRegistration(
            factory=factory,
            scope=scope,
            dependencies=list(dependencies)
        )
        self.logger.debug(f"📝 注册依赖项: {name} ({scope.value})")

    def is_registered(self, name: str) -> bool:
        return name in self._registrations

    def resolve(self, name: str) -> Any:
        """
        解析依赖项

        Args:
            name: 依赖项名称

        Returns:
            依赖项实例

        Raises:
            ValueError: 依赖项未注册
            RuntimeError: 循环依赖或工厂函数失败
        """
        if name not in self._registrations:
            raise ValueError(f"依赖项 '{name}' 未注册")

        registration = self._registrations[name]
        if registration.scope == DependencyScope.SINGLETON and registration.initialized:
            return registration.instance

        if name in self._resolving:
            raise RuntimeError(f"检测到循环依赖: {name}")

        self._resolving.add(name)
        try:
            kwargs = {dep: self.resolve(dep) for dep in registration.dependencies}
            instance = registration.factory(**kwargs)
        except RuntimeError:
            raise
        except Exception as e:
            self.logger.error(f"❌ 依赖项解析失败: {name} - {e}", exc_info=True)
            raise RuntimeError(f"依赖项 '{name}' 解析失败: {e}") from e
        finally:
            self._resolving.discard(name)

        if registration.scope == DependencyScope.SINGLETON:
            registration.instance = instance
            registration.initialized = True

        self.logger.debug(f"✅ 依赖项解析完成: {name}")
        return instance

    def validate_dependencies(self) -> bool:
        """
        验证依赖关系（全部已注册且无循环）

        Raises:
            RuntimeError: 存在未注册的依赖或循环依赖
        """
        visited: set = set()
        stack: set = set()

        def visit(node: str) -> None:
            if node in stack:
                raise RuntimeError(f"检测到循环依赖，涉及组件: {node}")
            if node in visited:
                return
            stack.add(node)
            for dep in self._registrations[node].dependencies:
                if dep not in self._registrations:
                    raise RuntimeError(f"依赖项 '{dep}' 未注册（被 '{node}' 依赖）")
                visit(dep)
            stack.remove(node)
            visited.add(node)

        for name in self._registrations:
            visit(name)

        self.logger.info("✅ 依赖关系验证通过")
        return True
