"""A small Next.js application used by the end-to-end tests."""

from __future__ import annotations

SAMPLE_APP = {
    "package.json": '{"name": "sample-app", "private": true}\n',
    "tsconfig.json": """
    {
      // Mirrors the create-next-app defaults with a src/ directory.
      "compilerOptions": {
        "strict": true,
        "paths": { "@/*": ["./src/*"] },
      },
    }
    """,
    "src/types/user.ts": """
    /** A registered account. */
    export interface User {
      id: string;
      email: string;
      role: Role;
    }

    export enum Role {
      Admin = "admin",
      Member = "member",
    }

    export type UserId = User["id"];
    """,
    "src/components/UserCard.tsx": """
    import type { User } from "@/types/user";

    interface UserCardProps {
      user: User;
      compact?: boolean;
    }

    export function UserCard({ user }: UserCardProps) {
      return <div className="card">{user.email}</div>;
    }
    """,
    "src/components/UserList.tsx": """
    import { UserCard } from "./UserCard";
    import { useUsers } from "../hooks/useUsers";

    export default function UserList() {
      const { users } = useUsers();
      return (
        <ul>
          {users.map((user) => (
            <UserCard key={user.id} user={user} />
          ))}
        </ul>
      );
    }
    """,
    "src/hooks/useUsers.ts": """
    import { useState } from "react";
    import type { User } from "../types/user";

    // Loads the user directory.
    export function useUsers(): { users: User[] } {
      const [users] = useState<User[]>([]);
      return { users };
    }
    """,
    "src/context/AuthProvider.tsx": """
    import { createContext } from "react";

    export const AuthContext = createContext(null);

    export function AuthProvider({ children }: { children: React.ReactNode }) {
      return <AuthContext.Provider value={null}>{children}</AuthContext.Provider>;
    }
    """,
    "src/lib/auth.ts": """
    export async function verifyToken(token: string) {
      return token.length > 0;
    }
    """,
    "src/app/api/users/route.ts": """
    import { verifyToken } from "@/lib/auth";

    export async function GET(request: Request) {
      const ok = await verifyToken(request.headers.get("authorization") ?? "");
      return Response.json({ ok });
    }
    """,
    "src/app/page.tsx": """
    import UserList from "@/components/UserList";

    export default function Page() {
      return (
        <main>
          <UserList />
        </main>
      );
    }
    """,
}


__all__ = ["SAMPLE_APP"]
